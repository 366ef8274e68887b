"""
Product data models for Catalog Service.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from shared.errors import CacheConversionError


@dataclass
class Product:
    """Persistent product record. ``id`` is assigned by the record store."""
    name: str
    price: Decimal
    category: str
    id: Optional[int] = None


class ProductDTO(BaseModel):
    """Transfer object used for cache entries, event payloads and API responses."""

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = Field(None, description="Store-assigned identity")
    name: str = Field(..., min_length=1, max_length=255, description="Product name")
    price: Decimal = Field(..., ge=0, description="Unit price")
    category: str = Field(..., description="Product category")


class ProductUpdate(BaseModel):
    """Fields an update may change. Category and id are immutable through updates."""
    name: str = Field(..., min_length=1, max_length=255)
    price: Decimal = Field(..., ge=0)


_product_list_adapter = TypeAdapter(List[ProductDTO])


def to_dto(product: Product) -> ProductDTO:
    """Project a record into a transfer object."""
    return ProductDTO(
        id=product.id,
        name=product.name,
        price=product.price,
        category=product.category
    )


def to_entity(dto: ProductDTO) -> Product:
    """Build a record from a transfer object."""
    return Product(
        id=dto.id,
        name=dto.name,
        price=dto.price,
        category=dto.category
    )


def dump_dto(dto: ProductDTO) -> dict:
    """Generic (JSON-compatible) representation used for cache storage."""
    return dto.model_dump(mode="json")


def dump_dto_list(dtos: List[ProductDTO]) -> List[dict]:
    return [dump_dto(dto) for dto in dtos]


def load_dto(key: str, raw: Any) -> ProductDTO:
    """Convert a cached value back to a ProductDTO."""
    try:
        return ProductDTO.model_validate(raw)
    except PydanticValidationError as e:
        raise CacheConversionError(key, str(e)) from e


def load_dto_list(key: str, raw: Any) -> List[ProductDTO]:
    """Convert a cached collection back to an ordered list of ProductDTOs."""
    try:
        return _product_list_adapter.validate_python(raw)
    except PydanticValidationError as e:
        raise CacheConversionError(key, str(e)) from e
