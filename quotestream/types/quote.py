"""
Value types returned by the downstream quote and fx services.
"""

from pydantic import BaseModel, ConfigDict, Field


class Quote(BaseModel):
    """
    Current price snapshot for one instrument.
    Values are kept as the quote service formats them.
    """

    model_config = ConfigDict(frozen=True, validate_by_alias=True, validate_by_name=True)

    price: str
    change_amount: str = Field(alias="changeAmount")
    sign: str
    change_rate: str = Field(alias="changeRate")


class FxInfo(BaseModel):
    """Currency-pair rate snapshot."""

    model_config = ConfigDict(frozen=True, validate_by_alias=True, validate_by_name=True)

    fx_type: str = Field(alias="fxType")
    fx_code: str = Field(alias="fxCode")
    rate: str
    change_amount: str | None = Field(default=None, alias="changeAmount")
    sign: str | None = None
    change_rate: str | None = Field(default=None, alias="changeRate")
