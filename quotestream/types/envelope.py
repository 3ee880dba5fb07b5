"""
Envelope type definitions.

An envelope is the unit of work on the request stream. It is persisted as a
flat field map and parsed back into exactly one payload variant, selected
by the ``type`` field.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from quotestream.constants import (
    FIELD_FX_CODE,
    FIELD_FX_TYPE,
    FIELD_STOCK_CODE,
    FIELD_TYPE,
    EnvelopeType,
)
from quotestream.exceptions import MalformedEnvelopeError


class _EnvelopeModel(BaseModel):
    """Common configuration for envelope variants."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_by_alias=True,
        validate_by_name=True,
    )

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise MalformedEnvelopeError(
                f"Invalid {type(self).__name__} fields {sorted(data)}: "
                f"{e.error_count()} error(s)"
            ) from e


class StockEnvelope(_EnvelopeModel):
    """Request to refresh the price of a single instrument."""

    type: Literal["stock"] = "stock"
    stock_code: str = Field(alias=FIELD_STOCK_CODE, min_length=1)

    @property
    def envelope_type(self) -> EnvelopeType:
        return EnvelopeType.STOCK

    @property
    def key(self) -> str:
        return self.stock_code


class FxEnvelope(_EnvelopeModel):
    """Request to look up a currency-pair rate."""

    type: Literal["fx"] = "fx"
    fx_type: str = Field(alias=FIELD_FX_TYPE, min_length=1)
    fx_code: str = Field(alias=FIELD_FX_CODE, min_length=1)

    @property
    def envelope_type(self) -> EnvelopeType:
        return EnvelopeType.FX

    @property
    def key(self) -> str:
        return f"{self.fx_type}/{self.fx_code}"


Envelope = Annotated[StockEnvelope | FxEnvelope, Field(discriminator=FIELD_TYPE)]

_envelope_adapter: TypeAdapter[StockEnvelope | FxEnvelope] = TypeAdapter(Envelope)


def envelope_to_fields(envelope: StockEnvelope | FxEnvelope) -> dict[str, str]:
    """
    Serialize an envelope into the flat field map stored on the stream.

    Args:
        envelope: The envelope to serialize.

    Returns:
        Field map keyed by wire names (``type``, ``stockCode``, ...).
    """
    return envelope.model_dump(by_alias=True)


def envelope_from_fields(fields: dict[str, str]) -> StockEnvelope | FxEnvelope:
    """
    Parse a stream entry's field map into an envelope.

    Only wire names are accepted; Python attribute names such as
    ``stock_code`` are rejected as unknown fields.

    Args:
        fields: The raw field map read from the stream.

    Returns:
        The envelope variant selected by the ``type`` field.

    Raises:
        MalformedEnvelopeError: If the type is missing or unknown, or the
            payload fields do not match the type.
    """
    try:
        return _envelope_adapter.validate_python(fields, by_alias=True, by_name=False)
    except ValidationError as e:
        raise MalformedEnvelopeError(
            f"Invalid envelope fields {sorted(fields)}: {e.error_count()} error(s)"
        ) from e
