import pytest

from videotube.core.errors import ValidationError
from videotube.services.pagination import page_meta, validate_page_args


def test_page_meta_middle_page():
    assert page_meta(45, 2, 20) == {
        "page": 2,
        "page_size": 20,
        "total_items": 45,
        "total_pages": 3,
        "has_next_page": True,
        "has_prev_page": True,
    }


def test_page_meta_empty():
    meta = page_meta(0, 1, 20)

    assert meta["total_pages"] == 0
    assert meta["has_next_page"] is False
    assert meta["has_prev_page"] is False


def test_page_meta_past_the_end():
    meta = page_meta(5, 4, 2)

    assert meta["total_pages"] == 3
    assert meta["has_next_page"] is False


@pytest.mark.parametrize("page,page_size", [(0, 20), (-1, 20), (1, 0), (1, 101)])
def test_validate_page_args_rejects(page, page_size):
    with pytest.raises(ValidationError):
        validate_page_args(page, page_size)


def test_validate_page_args_accepts_bounds():
    validate_page_args(1, 1)
    validate_page_args(1, 100)
