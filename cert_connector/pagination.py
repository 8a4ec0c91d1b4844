import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from cert_connector.errors import PaginationLimitError
from cert_connector.parsing import empty_frame, records_to_frame

Cursor = Optional[int]
FetchPage = Callable[[Cursor], Tuple[List[Dict[str, Any]], Cursor]]

FIRST_PAGE = 1


def next_cursor(cursor: Cursor) -> int:
    return (cursor or FIRST_PAGE) + 1


def paginate(
    fetch_page: FetchPage,
    columns: Sequence[str],
    log=None,
    max_pages: Optional[int] = None,
) -> pd.DataFrame:
    """
    Fetch pages until one comes back empty and concatenate them.

    ``fetch_page(cursor)`` returns ``(records, next_cursor)``; ``None`` as the
    cursor means the first page. An empty page is terminal and contributes
    no rows. A non-empty page advances to ``cursor + 1`` unless the fetcher
    returned ``None`` as its next cursor.

    Errors raised by ``fetch_page`` propagate; nothing fetched so far is
    returned.
    """
    log = log or logging.getLogger("cert_connector")
    frames: List[pd.DataFrame] = []
    cursor: Cursor = None
    pages = 0
    rows = 0

    while True:
        if max_pages is not None and pages >= max_pages:
            raise PaginationLimitError(
                f"Stopped after {pages} pages without reaching an empty page "
                f"(max_pages={max_pages})."
            )
        records, reported = fetch_page(cursor)
        pages += 1

        if not records:
            log.info(
                f"[paginate] page={cursor or FIRST_PAGE} empty -> done "
                f"pages={pages} rows={rows}"
            )
            break

        frames.append(records_to_frame(records, columns))
        rows += len(records)
        log.info(
            f"[paginate] page={cursor or FIRST_PAGE} rows={len(records)} total={rows}"
        )
        if reported is None:
            break
        cursor = next_cursor(cursor)

    if not frames:
        return empty_frame(columns)
    out = pd.concat(frames, ignore_index=True)
    return out.reindex(columns=list(columns))
