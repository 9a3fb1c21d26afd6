"""
HTTP lookups used while preparing a bump.

Both helpers accept an optional ``httpx.AsyncClient`` so callers can share a
connection pool or inject a mock transport.
"""

from __future__ import annotations

import logging
import re

import httpx

from autobumper.errors import ExecutionError

logger = logging.getLogger(__name__)

ERR_ONCALL_MSG_TEMPLATE = (
    "An error occurred while finding an assignee: `{}`.\nFalling back to Blunderbuss."
)
NO_ONCALL_MSG = "Nobody is currently oncall, so falling back to Blunderbuss."

# Matches e.g. "gcr.io/k8s-prow/deck:v20200717-cf288082e1"
PROW_IMAGE_TAG_RE = re.compile(r"gcr\.io/k8s-prow/[\w.-]+:(v[\w.-]+)")

HTTP_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


async def _get(url: str, client: httpx.AsyncClient | None) -> httpx.Response:
    if client is not None:
        return await client.get(url)
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT, follow_redirects=True) as owned:
        return await owned.get(url)


async def get_assignment(oncall_address: str, client: httpx.AsyncClient | None = None) -> str:
    """Return the PR body line that assigns the current test-infra on-call.

    Never raises: lookup problems are turned into a message so the PR can
    still be opened.
    """
    if not oncall_address:
        return ""

    try:
        response = await _get(oncall_address, client)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        return ERR_ONCALL_MSG_TEMPLATE.format(exc)

    if response.status_code != httpx.codes.OK:
        return ERR_ONCALL_MSG_TEMPLATE.format(
            f"Error requesting oncall address: HTTP error {response.status_code}: "
            f"{response.reason_phrase!r}"
        )

    try:
        payload = response.json()
        oncall = payload["Oncall"]["testinfra"]
    except (ValueError, KeyError, TypeError) as exc:
        return ERR_ONCALL_MSG_TEMPLATE.format(f"error decoding oncall response: {exc!r}")

    if not oncall:
        return NO_ONCALL_MSG
    return f"/cc @{oncall}"


async def parse_upstream_image_version(
    upstream_address: str, client: httpx.AsyncClient | None = None
) -> str:
    """Fetch a deployment file and return the prow image tag it references.

    Raises:
        ExecutionError: If the file cannot be fetched or holds no prow tag.
    """
    if not upstream_address:
        raise ExecutionError("upstream address is empty")

    try:
        response = await _get(upstream_address, client)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise ExecutionError(f"error fetching upstream file {upstream_address}: {exc}") from exc

    if response.status_code != httpx.codes.OK:
        raise ExecutionError(
            f"error fetching upstream file {upstream_address}: HTTP {response.status_code}"
        )

    match = PROW_IMAGE_TAG_RE.search(response.text)
    if match is None:
        raise ExecutionError(f"couldn't find a prow image tag in {upstream_address}")
    logger.debug("Upstream prow version is %s", match.group(1))
    return match.group(1)
