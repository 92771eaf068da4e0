"""Rate sources and directories."""

from .bankiru import BankiruBestRates, BankiruBranchDirectory, CityDirectory
from .base import (
    IBestRateSource,
    IBranchDirectory,
    IMarketQuoteSource,
    IReferenceRateSource,
    clean_string,
    parse_decimal,
)
from .cbr import CbrReferenceSource
from .moex import MoexMarketQuote

__all__ = [
    "IReferenceRateSource",
    "IBestRateSource",
    "IMarketQuoteSource",
    "IBranchDirectory",
    "CbrReferenceSource",
    "BankiruBestRates",
    "BankiruBranchDirectory",
    "CityDirectory",
    "MoexMarketQuote",
    "parse_decimal",
    "clean_string",
]
