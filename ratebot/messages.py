"""User-facing texts and formatting."""

from decimal import Decimal

from .models import BranchRecord, Intent, RateBundle

BUY_TOKENS = {"buy": Intent.BUY, "купить": Intent.BUY}
SELL_TOKENS = {"sell": Intent.SELL, "продать": Intent.SELL}
INTENT_TOKENS = {**BUY_TOKENS, **SELL_TOKENS}

INTENT_KEYBOARD = (("buy", "sell"),)

# Region names come from banki.ru, in Russian
CITY_EXAMPLE = "Москва"

CITY_PROMPT = (
    "Hi! I find the best place to exchange dollars in your city.\n"
    f"Which city are you in? Send me its name, e.g. {CITY_EXAMPLE}."
)
SPECIFY_CITY = f"Please specify a city first, e.g. {CITY_EXAMPLE}."
UNAUTHORIZED = "You're not authorized to use me!"
PONG = "pong"
RATES_TITLE = "USD exchange rates"


def display_city(city: str) -> str:
    """Capitalize the first letter only: 'нижний новгород' -> 'Нижний новгород'."""
    return city[:1].upper() + city[1:]


def intent_prompt(city: str) -> str:
    return f"{display_city(city)}: do you want to buy or sell dollars?"


def help_text(city: str | None = None) -> str:
    lines = [
        f"Send a city name to see the best USD rates there, e.g. {CITY_EXAMPLE}.",
        f"Add 'buy' or 'sell' to get the answer right away: {CITY_EXAMPLE} купить.",
    ]
    if city:
        lines.append(
            f"Your city is {display_city(city)}: just send 'buy' or 'sell'."
        )
    return "\n".join(lines)


def _figure(value: Decimal) -> str:
    # Figures are shown exactly as the source published them
    return str(value)


def rate_message(city: str, intent: Intent, bundle: RateBundle) -> str:
    """Consolidated answer citing the best offer for the chosen side."""
    quote = bundle.quote_for(intent)
    action = "Buy" if intent is Intent.BUY else "Sell"
    lines = [
        f"USD in {display_city(city)}",
        f"{action} for {_figure(quote.rate)} ({quote.description})",
        f"Central bank: {_figure(bundle.reference_rate)}",
    ]
    if bundle.market_quote is not None:
        lines.append(f"Exchange: {_figure(bundle.market_quote)}")
    return "\n".join(lines)


def branch_text(branch: BranchRecord) -> str:
    lines = [branch.name, branch.address]
    if branch.phone:
        lines.append(branch.phone)
    return "\n".join(line for line in lines if line)
