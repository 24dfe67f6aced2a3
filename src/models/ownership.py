from dataclasses import dataclass
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from config.chain_detection import (
    DEFAULT_BATCH_LIMIT,
    MAX_BATCH_LIMIT,
    MIN_CONFIDENCE_SCORE,
)
from src.services.errors import ClientInputError
from src.utils.name_matcher import normalize_name


class SoldListingRef(BaseModel):
    listing_id: str
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None


class BuyerInfo(BaseModel):
    buyer_name: Optional[str] = None
    buyer_mailing_address: Optional[str] = None
    sale_date: Optional[str] = None  # ISO date as reported by the deed record
    sale_price: Optional[float] = None


class PropertyOwnership(BaseModel):
    address: str
    city: str = ""
    state: str = ""
    zip: str = ""
    owner_name: str
    mailing_address: Optional[str] = None
    property_address: Optional[str] = None  # Full one-line address
    last_sale_date: Optional[str] = None


class ChainMatch(BaseModel):
    """A buyer of ``sold_*`` who appears to still own ``owned_property_*``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    sold_address: str
    sold_city: str
    sold_state: str
    sold_zip: str
    sale_date: Optional[str] = None
    sale_price: Optional[float] = None
    buyer_name: str
    buyer_name_normalized: str = ""
    owned_property_address: str
    owned_property_city: str
    owned_property_state: str
    owned_property_zip: str
    confidence_score: int = Field(ge=0, le=100)
    match_signals: Dict[str, bool] = Field(default_factory=dict)
    sold_listing_id: Optional[str] = Field(default=None, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _derive_normalized_name(cls, data):
        if isinstance(data, dict):
            data = dict(data)
            data.pop("buyerNameNormalized", None)
            buyer_name = data.get("buyer_name", data.get("buyerName")) or ""
            data["buyer_name_normalized"] = normalize_name(buyer_name)
        return data

    @field_validator("confidence_score")
    @classmethod
    def _require_minimum_confidence(cls, value: int) -> int:
        if value < MIN_CONFIDENCE_SCORE:
            raise ValueError(f"confidence_score {value} below minimum {MIN_CONFIDENCE_SCORE}")
        return value

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True)


# ---------------------------------------------------------------------------
# Request variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ByListingId:
    listing_id: str


@dataclass(frozen=True)
class ByAddress:
    street: str
    city: str
    state: str
    zip: str


@dataclass(frozen=True)
class BatchScan:
    limit: int = DEFAULT_BATCH_LIMIT


DetectionMode = Union[ByListingId, ByAddress, BatchScan]


class DetectChainRequest(BaseModel):
    """Raw request body for chain detection; see ``to_mode``."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    sold_listing_id: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    limit: int = Field(default=DEFAULT_BATCH_LIMIT, ge=1, le=MAX_BATCH_LIMIT)

    def to_mode(self) -> DetectionMode:
        if self.sold_listing_id:
            return ByListingId(listing_id=self.sold_listing_id)

        address = {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
        }
        provided = [k for k, v in address.items() if v]
        if len(provided) == len(address):
            return ByAddress(**address)
        if provided:
            missing = ", ".join(k for k in address if k not in provided)
            raise ClientInputError(f"Incomplete address: missing {missing}")

        return BatchScan(limit=self.limit)


def parse_detection_mode(payload) -> DetectionMode:
    """Validate a decoded JSON body and return the selected mode."""
    if not isinstance(payload, dict):
        raise ClientInputError("Request body must be a JSON object")
    try:
        request = DetectChainRequest.model_validate(payload)
    except ValidationError as e:
        raise ClientInputError("Invalid request body", detail=str(e)) from e
    return request.to_mode()
