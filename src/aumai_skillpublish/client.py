"""HTTP client for the skill registry API."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import quote, urlencode

import requests
from pydantic import ValidationError

from aumai_skillpublish.errors import (
    JobFailedError,
    JobTimeoutError,
    PublishRejectedError,
    QuoteRejectedError,
    RemoteRequestError,
)
from aumai_skillpublish.models import JobStatus, PublishJob, Quote, RemoteConfig, UploadFile

__all__ = [
    "RegistryClient",
    "normalize_api_base_url",
    "build_api_url",
    "send_json",
]

logger = logging.getLogger(__name__)

API_VERSION_SUFFIX = "/api/v1"
REQUEST_TIMEOUT_SECONDS = 30
JOB_COMPLETED = "completed"
JOB_FAILED = "failed"


def normalize_api_base_url(value: str) -> str:
    """Strip one trailing slash and make sure the URL ends in ``/api/v1``."""
    trimmed = value.strip()
    if not trimmed:
        return ""
    if trimmed.endswith("/"):
        trimmed = trimmed[:-1]
    if trimmed.endswith(API_VERSION_SUFFIX):
        return trimmed
    return f"{trimmed}{API_VERSION_SUFFIX}"


def build_api_url(
    base_url: str,
    endpoint: str,
    query: Mapping[str, object] | None = None,
) -> str:
    """Join ``base_url`` and ``endpoint``; empty query values are dropped."""
    base = base_url[:-1] if base_url.endswith("/") else base_url
    path = endpoint if endpoint.startswith("/") else f"/{endpoint}"
    url = f"{base}{path}"
    params = {key: str(value) for key, value in (query or {}).items() if value not in (None, "")}
    if params:
        url = f"{url}?{urlencode(params)}"
    return url


def summarize_error_body(response: requests.Response) -> str:
    """Compact JSON if the body parses, the raw text otherwise."""
    text = response.text
    if not text:
        return ""
    try:
        return json.dumps(json.loads(text), separators=(",", ":"), ensure_ascii=False)
    except ValueError:
        return text


def send_json(
    session: requests.Session,
    method: str,
    url: str,
    *,
    headers: Mapping[str, str],
    body: object = None,
    label: str | None = None,
    timeout: float = REQUEST_TIMEOUT_SECONDS,
) -> Any:
    """Send one JSON request and return the decoded response body.

    Args:
        session: Session used for the request.
        method: HTTP method.
        url: Absolute URL.
        headers: Request headers.
        body: JSON-serializable request body, or None for no body.
        label: Prefix for error messages; defaults to ``"<method> <url>"``.
        timeout: Per-request timeout in seconds.

    Returns:
        The decoded JSON body, or None for an empty or 204 response.

    Raises:
        RemoteRequestError: On transport failure, a non-2xx status, or a
            success body that is not JSON.
    """
    label = label or f"{method} {url}"
    try:
        response = session.request(method, url, headers=dict(headers), json=body, timeout=timeout)
    except requests.RequestException as exc:
        raise RemoteRequestError(f"{label} failed: {exc}") from exc

    if not 200 <= response.status_code < 300:
        details = summarize_error_body(response)
        suffix = f": {details}" if details else ""
        raise RemoteRequestError(
            f"{label} failed with {response.status_code}{suffix}", response.status_code
        )
    if response.status_code == 204 or not response.content:
        return None
    try:
        return response.json()
    except ValueError as exc:
        raise RemoteRequestError(
            f"{label} returned a non-JSON body", response.status_code
        ) from exc


class RegistryClient:
    """Quote, publish and job-status calls against one registry endpoint."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = normalize_api_base_url(base_url)
        self._api_key = api_key
        self._session = session or requests.Session()

    def __enter__(self) -> RegistryClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._session.close()

    def _headers(self) -> dict[str, str]:
        return {
            "content-type": "application/json",
            "accept": "application/json",
            "x-api-key": self._api_key,
        }

    def _request(
        self,
        method: str,
        endpoint: str,
        body: dict[str, object] | None = None,
        query: Mapping[str, object] | None = None,
    ) -> Any:
        url = build_api_url(self.base_url, endpoint, query)
        return send_json(self._session, method, url, headers=self._headers(), body=body)

    @staticmethod
    def _files_body(
        files: list[UploadFile],
        account_id: str | None,
        **extra: object,
    ) -> dict[str, object]:
        body: dict[str, object] = {
            "files": [item.model_dump(by_alias=True, mode="json") for item in files],
            **extra,
        }
        if account_id:
            body["accountId"] = account_id
        return body

    def fetch_config(self) -> RemoteConfig:
        """Fetch the package constraints. A non-object body means no limits."""
        payload = self._request("GET", "/skills/config")
        return RemoteConfig.model_validate(payload if isinstance(payload, dict) else {})

    def request_quote(self, files: list[UploadFile], account_id: str | None = None) -> Quote:
        """Upload the package for pricing.

        Raises:
            QuoteRejectedError: If the response has no usable quoteId.
        """
        payload = self._request("POST", "/skills/quote", body=self._files_body(files, account_id))
        try:
            return Quote.model_validate(payload)
        except ValidationError as exc:
            raise QuoteRejectedError("Quote response did not include quoteId.") from exc

    def start_publish(
        self,
        files: list[UploadFile],
        quote_id: str,
        account_id: str | None = None,
    ) -> PublishJob:
        """Submit the package against an accepted quote.

        Raises:
            PublishRejectedError: If the response has no usable jobId.
        """
        body = self._files_body(files, account_id, quoteId=quote_id)
        payload = self._request("POST", "/skills/publish", body=body)
        try:
            return PublishJob.model_validate(payload)
        except ValidationError as exc:
            raise PublishRejectedError("Publish response did not include jobId.") from exc

    def get_job(self, job_id: str, account_id: str | None = None) -> JobStatus:
        payload = self._request(
            "GET",
            f"/skills/jobs/{quote(job_id, safe='')}",
            query={"accountId": account_id},
        )
        return JobStatus.model_validate(payload if isinstance(payload, dict) else {})

    def wait_for_job(
        self,
        job_id: str,
        *,
        account_id: str | None = None,
        timeout_ms: int,
        interval_ms: int,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> JobStatus:
        """Poll the job until it completes, fails, or the timeout elapses.

        Any status other than ``completed`` or ``failed`` keeps the loop going.

        Raises:
            JobFailedError: When the registry reports ``failed``.
            JobTimeoutError: When ``timeout_ms`` elapses first.
        """
        started = clock()
        timeout_seconds = timeout_ms / 1000
        last_status = ""
        while clock() - started < timeout_seconds:
            job = self.get_job(job_id, account_id)
            if job.status and job.status != last_status:
                logger.info("Job status: %s", job.status)
                last_status = job.status
            if job.status == JOB_COMPLETED:
                return job
            if job.status == JOB_FAILED:
                reason = job.failure_reason if job.failure_reason is not None else "unknown reason"
                raise JobFailedError(reason)
            sleep(interval_ms / 1000)
        raise JobTimeoutError(job_id, timeout_ms)
