"""Variant selection for cart lines.

A cart line either targets the product itself or one color/size variant of
it. The selection is resolved once from the raw ``(color_id, size_id)`` pair
into one of four explicit cases so downstream code never has to guess from
loosely typed ids.
"""

from dataclasses import dataclass
from typing import Optional, Union

from services.store_service.models import ProductVariant
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True)
class VariantSelector:
    @property
    def color_id(self) -> Optional[int]:
        return None

    @property
    def size_id(self) -> Optional[int]:
        return None

    @property
    def is_variant(self) -> bool:
        return self.color_id is not None or self.size_id is not None


@dataclass(frozen=True)
class NoVariant(VariantSelector):
    pass


@dataclass(frozen=True)
class ColorOnly(VariantSelector):
    color: int

    @property
    def color_id(self) -> Optional[int]:
        return self.color


@dataclass(frozen=True)
class SizeOnly(VariantSelector):
    size: int

    @property
    def size_id(self) -> Optional[int]:
        return self.size


@dataclass(frozen=True)
class ColorAndSize(VariantSelector):
    color: int
    size: int

    @property
    def color_id(self) -> Optional[int]:
        return self.color

    @property
    def size_id(self) -> Optional[int]:
        return self.size


Selector = Union[NoVariant, ColorOnly, SizeOnly, ColorAndSize]


def selector_for(color_id: Optional[int], size_id: Optional[int]) -> Selector:
    """Build a selector from raw ids. Falsy ids (None, 0, "") mean 'not selected'."""
    if color_id and size_id:
        return ColorAndSize(int(color_id), int(size_id))
    if color_id:
        return ColorOnly(int(color_id))
    if size_id:
        return SizeOnly(int(size_id))
    return NoVariant()


def make_cart_key(product_id: int, selector: VariantSelector) -> str:
    """``"42"``, ``"42_3"`` or ``"42_3_7"``: empty segments are dropped.

    A size-only selection yields ``"42_7"``, which is indistinguishable from a
    color-only key by shape; the key is an identifier, not something to parse.
    """
    parts = [product_id, selector.color_id, selector.size_id]
    return "_".join(str(part) for part in parts if part)


async def find_variant(
    db: AsyncSession, product_id: int, selector: VariantSelector
) -> Optional[ProductVariant]:
    """Return the first variant matching the selected parts, active or not.

    Only the selected parts constrain the lookup: a color-only selection
    matches the lowest-id variant of that color whatever its size.
    """
    if not selector.is_variant:
        return None

    query = select(ProductVariant).where(ProductVariant.product_id == product_id)
    if selector.color_id is not None:
        query = query.where(ProductVariant.color_id == selector.color_id)
    if selector.size_id is not None:
        query = query.where(ProductVariant.size_id == selector.size_id)

    result = await db.execute(query.order_by(ProductVariant.id).limit(1))
    return result.scalar_one_or_none()
