import pytest

from variant_hide.domain.catalog import make_sku

pytestmark = pytest.mark.grp_catalog


def test_sku_replaces_spaces_and_lowercases():
    assert make_sku("Blue Shirt XL") == "blue-shirt-xl"


def test_sku_each_whitespace_char_becomes_dash():
    # 连续空白不合并；tab / 换行同样替换
    assert make_sku("A  B\tC\nD") == "a--b-c-d"


def test_sku_empty_name():
    assert make_sku("") == ""


def test_sku_is_deterministic():
    assert make_sku("Red Mug") == make_sku("Red Mug")
