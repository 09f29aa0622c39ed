"""Unified data model for normalized capture exchanges.

The HAR extractor turns every recorded request/response pair into a
Sample; filtering, comparison, test generation and the exporters all
consume this model.
"""

from pydantic import BaseModel


class Sample(BaseModel):
    """One normalized API exchange."""

    method: str  # GET / POST / PUT / DELETE / PATCH
    url: str  # canonical: origin + path + sorted query, no fragment
    original_url: str = ""
    templated_url: str | None = None  # https://host/v1/users/{id}
    status: int = 0
    time: float = 0  # ms, sum of all timing phases
    size: int = 0  # response body bytes
    mime: str = ""
    req_headers: dict[str, str] = {}
    res_headers: dict[str, str] = {}
    req_body: str | None = None
    res_body: str | None = None
    key: str = ""  # set only after filtering

    @property
    def match_url(self) -> str:
        """URL used for correlation: the templated form when available."""
        return self.templated_url or self.url
