from __future__ import annotations

import importlib
import logging

from sqlalchemy.orm import DeclarativeBase, configure_mappers

log = logging.getLogger("variant_hide.models")


class Base(DeclarativeBase):
    """全局唯一 ORM Base"""

    pass


_INITIALIZED: bool = False  # 防重复初始化

# 关系里用到字符串目标类，必须全部导入后再 configure_mappers()
MODEL_MODULES = (
    "variant_hide.models.catalog",
    "variant_hide.models.order",
)


def init_models(*, force: bool = False) -> None:
    """集中导入模型 + 固化关系映射。"""
    global _INITIALIZED
    if _INITIALIZED and not force:
        log.debug("init_models() called again; already initialized, skipping.")
        return

    for mod in MODEL_MODULES:
        importlib.import_module(mod)

    configure_mappers()
    _INITIALIZED = True
    log.info("ORM models initialized & mappers configured (loaded %d modules)", len(MODEL_MODULES))
