"""Cursor pagination over JSON:API collections.

:func:`paginate_get` follows ``links.next`` from page to page and merges the
results into one collection-shaped object:

* ``data`` arrays are concatenated in page order;
* ``included`` resources are deduplicated by ``(type, id)``, keeping the
  first occurrence; entries without a string ``type`` and ``id`` are always
  kept;
* ``links`` is the last page's links object, so ``links.next`` still tells
  the caller whether more data exists.

Pages are fetched strictly one after another. A caller *limit* caps the
number of items and is checked before each further fetch, so no page is
requested once the cap is reached.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional
from urllib.parse import urljoin, urlsplit

from specrun.client.executor import RawHTTPPerformer, resolve_request, set_query_param
from specrun.client.response import decode_json_body, raise_for_status
from specrun.exceptions import InvalidArgumentError
from specrun.models import CallPlan, PaginatedResult
from specrun.output import debug

MAX_PAGE_SIZE = 200


async def paginate_get(
    plan: CallPlan,
    api_root: str,
    performer: RawHTTPPerformer,
    path_params: Optional[Mapping[str, str]] = None,
    query_items: Iterable[tuple[str, str]] = (),
    extra_headers: Optional[Mapping[str, str]] = None,
    accept_override: Optional[str] = None,
    suppress_json_headers: bool = False,
    limit: Optional[int] = None,
) -> PaginatedResult:
    """Fetch every page of a GET collection and merge them.

    Args:
        plan: Call plan of a GET operation.
        api_root: Root for the first request and for relative next links.
        performer: Sends each page request.
        path_params: See :func:`~specrun.client.executor.resolve_request`.
        query_items: Caller query; any ``limit`` item is replaced by the
            page size.
        extra_headers: Headers sent with every page.
        accept_override: Forced ``Accept`` value.
        suppress_json_headers: Never let the transport add JSON headers.
        limit: Maximum number of ``data`` items to return. ``0`` returns an
            empty collection without any request; negative values count as 0.

    Returns:
        A :class:`PaginatedResult` with the merged object in ``json_body``.

    Raises:
        InvalidArgumentError: If *plan* is not a GET, or the first page is not
            an object with a ``data`` array.
        APIError: If any page answers with a non-2xx status.
    """
    if plan.method.upper() != "GET":
        raise InvalidArgumentError(
            "Pagination is only supported for GET operations.",
            details={"method": plan.method, "operationId": plan.operation_id},
        )

    hard_limit = max(0, limit) if limit is not None else None
    page_size = str(min(max(hard_limit if hard_limit is not None else MAX_PAGE_SIZE, 1), MAX_PAGE_SIZE))

    query = [(k, v) for k, v in query_items if k != "limit"]
    query.append(("limit", page_size))
    first_request = resolve_request(
        plan,
        api_root,
        path_params=path_params,
        query_items=query,
        extra_headers=extra_headers,
        accept_override=accept_override,
        suppress_json_headers=suppress_json_headers,
    )

    if hard_limit == 0:
        return PaginatedResult(
            status_code=200,
            headers={},
            json_body={"data": []},
            page_count=0,
            item_count=0,
            first_request=first_request,
        )

    first = raise_for_status(
        await performer.perform(
            first_request.method,
            first_request.url,
            None,
            first_request.add_json_headers,
            first_request.headers,
        )
    )
    merged = decode_json_body(first.body)
    if not _is_collection(merged):
        raise InvalidArgumentError(
            "Pagination requires a JSON response with a top-level object containing `data` as an array.",
            details={"contentType": first.content_type},
        )

    data: list[Any] = list(merged["data"])
    included = _IncludedMerger()
    included.add(merged.get("included"))
    links = merged.get("links") if isinstance(merged.get("links"), dict) else None
    next_link = _next_link(merged)
    pages = 1

    while next_link is not None:
        if hard_limit is not None and len(data) >= hard_limit:
            break

        url = set_query_param(_resolve_next_url(next_link, api_root), "limit", page_size)
        debug(f"Fetching page {pages + 1}: {url}")
        page = raise_for_status(
            await performer.perform(
                "GET",
                url,
                None,
                first_request.add_json_headers,
                first_request.headers,
            )
        )
        page_json = decode_json_body(page.body)
        if not _is_collection(page_json):
            debug(f"Page {pages + 1} is not a JSON:API collection; stopping")
            break

        data.extend(page_json["data"])
        included.add(page_json.get("included"))
        if isinstance(page_json.get("links"), dict):
            links = page_json["links"]
        next_link = _next_link(page_json)
        pages += 1

    if hard_limit is not None and len(data) > hard_limit:
        data = data[:hard_limit]

    merged["data"] = data
    if included.items:
        merged["included"] = included.items
    if links is not None:
        merged["links"] = links

    debug(f"Paginated {plan.operation_id}: {pages} page(s), {len(data)} item(s)")
    return PaginatedResult(
        status_code=first.status_code,
        headers=first.headers,
        json_body=merged,
        page_count=pages,
        item_count=len(data),
        first_request=first_request,
    )


class _IncludedMerger:
    """First-seen-wins accumulator for side-loaded resources."""

    def __init__(self) -> None:
        self.items: list[Any] = []
        self._seen: set[tuple[str, str]] = set()

    def add(self, included: Any) -> None:
        if not isinstance(included, list):
            return
        for item in included:
            if isinstance(item, dict):
                type_, id_ = item.get("type"), item.get("id")
                if isinstance(type_, str) and isinstance(id_, str):
                    if (type_, id_) in self._seen:
                        continue
                    self._seen.add((type_, id_))
            self.items.append(item)


def _is_collection(value: Any) -> bool:
    return isinstance(value, dict) and isinstance(value.get("data"), list)


def _next_link(page: dict[str, Any]) -> Optional[str]:
    links = page.get("links")
    if not isinstance(links, dict):
        return None
    value = links.get("next")
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _resolve_next_url(next_link: str, api_root: str) -> str:
    if urlsplit(next_link).scheme:
        return next_link
    return urljoin(api_root, next_link)
