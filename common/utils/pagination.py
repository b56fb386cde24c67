from typing import Any, Tuple


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def normalize_paging(page: Any, page_size: Any, max_page_size: int = 100) -> Tuple[int, int]:
    p, ps = _to_int(page), _to_int(page_size)
    p = p if p > 0 else 1
    ps = ps if ps > 0 else 20
    ps = min(ps, max_page_size)
    return p, ps
