"""Service layer forwarding expense operations to the upstream store."""
import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Union
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from config import Settings
from models.expense import ExpenseRecord

logger = logging.getLogger(__name__)

Number = Union[int, float]


class UpstreamError(ConnectionError):
    """Raised when a call to the upstream store fails for any reason."""

    def __init__(self, message: str, status_code: Optional[int] = None, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.status_code = status_code
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Opaque description of the failure for error responses."""
        source = self.cause if self.cause is not None else self
        return {
            "type": type(source).__name__,
            "detail": str(source),
            "status": self.status_code,
        }


# --- Aggregation helpers ---

def parse_calendar_date(value: Any) -> Optional[date]:
    """
    Parses an ISO-8601 date or datetime into a calendar date.
    Returns None when the value is missing or cannot be parsed.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def sum_by_date_range(expenses: Iterable[ExpenseRecord], start: Any, end: Any) -> Number:
    """Sums `nominal` over records dated within [start, end], both ends inclusive."""
    start_date = parse_calendar_date(start)
    end_date = parse_calendar_date(end)
    total: Number = 0
    if start_date is None or end_date is None:
        return total
    for expense in expenses:
        expense_date = parse_calendar_date(expense.date)
        if expense_date is not None and start_date <= expense_date <= end_date:
            total += expense.nominal
    return total


def sum_by_category(expenses: Iterable[ExpenseRecord], category: str) -> Number:
    """Sums `nominal` over records whose category equals `category` exactly."""
    total: Number = 0
    for expense in expenses:
        if expense.category == category:
            total += expense.nominal
    return total


# --- Upstream gateway ---

class ExpenseGateway:
    """
    Forwards expense operations to the upstream store over a shared httpx client.
    Every failure surfaces as UpstreamError.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient):
        self.settings = settings
        self.base_url = settings.base_url
        self.client = client

    def _item_url(self, expense_id: str) -> str:
        # the id is always a single path segment
        return f"{self.base_url}/{quote(expense_id, safe='')}"

    async def _request(self, method: str, url: str, payload: Optional[dict] = None, decode: bool = True) -> Any:
        logger.info(f"Upstream {method} {url}")
        try:
            response = await self.client.request(method, url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"Upstream {method} {url} returned {status}")
            raise UpstreamError(f"Upstream responded with status {status}", status_code=status, cause=e) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Upstream {method} {url} failed: {e!r}")
            raise UpstreamError(f"Upstream request failed: {e}", cause=e) from e
        except ValueError as e:
            # e.g. NaN in the payload, which is not valid JSON
            logger.error(f"Could not encode upstream {method} {url} request: {e}")
            raise UpstreamError(f"Could not build upstream request: {e}", cause=e) from e

        if not decode:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Upstream {method} {url} returned an undecodable body: {e}")
            raise UpstreamError("Upstream returned invalid JSON", cause=e) from e

    async def list_expenses(self) -> Any:
        return await self._request("GET", self.base_url)

    async def get_expense(self, expense_id: str) -> Any:
        return await self._request("GET", self._item_url(expense_id))

    async def create_expense(self, payload: dict) -> Any:
        return await self._request("POST", self.base_url, payload=payload)

    async def update_expense(self, expense_id: str, payload: dict) -> Any:
        return await self._request("PUT", self._item_url(expense_id), payload=payload)

    async def delete_expense(self, expense_id: str) -> None:
        await self._request("DELETE", self._item_url(expense_id), decode=False)

    async def fetch_records(self) -> List[ExpenseRecord]:
        """Fetches the whole collection and validates it for aggregation."""
        data = await self.list_expenses()
        if not isinstance(data, list):
            logger.error(f"Upstream collection is not a list: {type(data).__name__}")
            raise UpstreamError("Upstream collection is not a list")
        try:
            records = [ExpenseRecord.model_validate(item) for item in data]
        except ValidationError as e:
            logger.error(f"Malformed expense record from upstream: {e}")
            raise UpstreamError("Malformed expense record from upstream", cause=e) from e
        logger.info(f"Fetched {len(records)} expenses for aggregation.")
        return records

    async def total_by_date_range(self, start_date: Optional[str], end_date: Optional[str]) -> Number:
        records = await self.fetch_records()
        return sum_by_date_range(records, start_date, end_date)

    async def total_by_category(self, category: str) -> Number:
        records = await self.fetch_records()
        return sum_by_category(records, category)
