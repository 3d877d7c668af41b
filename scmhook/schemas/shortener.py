"""Pydantic models for URL shortener service descriptions."""

from typing import Literal

from pydantic import BaseModel, ConfigDict


class ShortenerRule(BaseModel):
    """One URL shortener service, tried in list order.

    The long URL is sent as ``field_name=<url>``: in the query string for
    ``GET`` requests, as a form-encoded body otherwise.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    method: Literal["GET", "POST"] = "POST"
    endpoint: str
    field_name: str = "url"
    # Only URLs starting with this prefix are sent to the service
    prefix: str | None = None
    # Exact status expected on success; any 2xx when unset
    expected_status: int | None = None
    # Read the short URL from this response header instead of the body
    response_header: str | None = None


DEFAULT_SHORTENERS: tuple[ShortenerRule, ...] = (
    ShortenerRule(
        name="is.gd",
        method="POST",
        endpoint="https://is.gd/create.php?format=simple",
    ),
    ShortenerRule(
        name="tinyurl",
        method="GET",
        endpoint="https://tinyurl.com/api-create.php",
    ),
)
