# variant_hide/domain/catalog.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

_WS = re.compile(r"\s")


def make_sku(product_name: str) -> str:
    """由商品名确定性生成 SKU：每个空白字符换成 '-'，再转小写。"""
    return _WS.sub("-", product_name or "").lower()


@dataclass(frozen=True)
class VariantUpdate:
    id: int
    # (language_code, name)
    translations: List[Tuple[str, str]]
    enabled: bool
    sku: str
    asset_ids: List[int] = field(default_factory=list)
    featured_asset_id: Optional[int] = None
