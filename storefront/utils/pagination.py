from typing import Tuple


def normalize_paging(page, page_size, max_page_size: int = 100) -> Tuple[int, int, int]:
    """Return (page, page_size, offset) with sane defaults and a size cap."""
    p = int(page) if page and int(page) > 0 else 1
    ps = int(page_size) if page_size and int(page_size) > 0 else 20
    ps = min(ps, max_page_size)
    return p, ps, (p - 1) * ps
