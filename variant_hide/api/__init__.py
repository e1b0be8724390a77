# variant_hide/api/__init__.py
"""
API package bootstrap.

- 这里不做重导出；路由挂载在 variant_hide/main.py
"""

__all__ = []
