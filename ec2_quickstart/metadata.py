# /*
# Copyright 2026 The ec2-quickstart Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""EC2 instance metadata lookups."""

from __future__ import annotations

import requests

from ec2_quickstart import logger
from ec2_quickstart.constants import (
    DEFAULT_METADATA_TIMEOUT,
    METADATA_BASE_URL,
    METADATA_PUBLIC_IP_PATH,
    METADATA_TOKEN_HEADER,
    METADATA_TOKEN_PATH,
    METADATA_TOKEN_TTL_HEADER,
    METADATA_TOKEN_TTL_SECONDS,
)


def _metadata_token(timeout: float) -> str | None:
    """Request an IMDSv2 session token, or None if the service refuses."""
    try:
        response = requests.put(
            f"{METADATA_BASE_URL}/{METADATA_TOKEN_PATH}",
            headers={METADATA_TOKEN_TTL_HEADER: str(METADATA_TOKEN_TTL_SECONDS)},
            timeout=timeout,
        )
    except requests.RequestException as exc:
        logger.debug(f"IMDSv2 token request failed: {exc}")
        return None
    if response.status_code != 200:
        return None
    return response.text.strip() or None


def fetch_metadata(path: str, timeout: float = DEFAULT_METADATA_TIMEOUT) -> str | None:
    """Read a metadata value, preferring IMDSv2 and falling back to IMDSv1.

    Args:
        path: Path below ``/latest/`` (e.g. ``meta-data/public-ipv4``).
        timeout: Per-request timeout in seconds.

    Returns:
        The stripped value, or None when the endpoint is unreachable or empty.
    """
    token = _metadata_token(timeout)
    headers = {METADATA_TOKEN_HEADER: token} if token else {}
    try:
        response = requests.get(f"{METADATA_BASE_URL}/{path.lstrip('/')}", headers=headers, timeout=timeout)
    except requests.RequestException as exc:
        logger.debug(f"Metadata request for {path} failed: {exc}")
        return None
    if response.status_code != 200:
        logger.debug(f"Metadata request for {path} returned HTTP {response.status_code}")
        return None
    return response.text.strip() or None


def detect_public_ip(timeout: float = DEFAULT_METADATA_TIMEOUT) -> str | None:
    """Detect the instance's public IPv4 address; None outside EC2."""
    return fetch_metadata(METADATA_PUBLIC_IP_PATH, timeout=timeout)
