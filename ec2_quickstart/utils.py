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

"""Utility functions for command probes, kubectl, helm arguments, and downloads."""

from __future__ import annotations

import subprocess

import requests
import sh

from ec2_quickstart.constants import INSTALLER_DOWNLOAD_TIMEOUT, KUBECTL_DEFAULT_TIMEOUT


def command_exists(cmd: str) -> bool:
    """Check whether a command is on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Returns:
        True if the command resolves, False otherwise.
    """
    try:
        sh.which(cmd)
    except (sh.ErrorReturnCode, sh.CommandNotFound):
        return False
    return True


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        RuntimeError: If the command is not found.
    """
    if not command_exists(cmd):
        raise RuntimeError(f"Required command '{cmd}' not found. Please install it first.")


def run_command(args: list[str], timeout: int = KUBECTL_DEFAULT_TIMEOUT) -> tuple[bool, str, str]:
    """Run a command via subprocess and return (success, stdout, stderr).

    Never raises; a missing binary or a timeout is reported as a failure.

    Args:
        args: Full argument vector, program first.
        timeout: Maximum seconds to wait for the command to complete.

    Returns:
        Tuple of (success, stdout, stderr).
    """
    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        return result.returncode == 0, result.stdout, result.stderr
    except (subprocess.SubprocessError, OSError) as exc:
        return False, "", str(exc)


def run_kubectl(args: list[str], timeout: int = KUBECTL_DEFAULT_TIMEOUT) -> tuple[bool, str, str]:
    """Run a kubectl command via subprocess and return (success, stdout, stderr).

    Uses subprocess instead of sh because probes and readiness checks must
    never raise, and need stdout and stderr kept apart.

    Args:
        args: kubectl arguments (e.g. ``["get", "pods", "-n", "default"]``).
        timeout: Maximum seconds to wait for the command to complete.

    Returns:
        Tuple of (success, stdout, stderr).
    """
    return run_command(["kubectl", *args], timeout=timeout)


def command_version(args: list[str]) -> str:
    """Return the first line a ``--version`` style command prints.

    Some tools (``java -version``) print to stderr, so both streams are read.

    Args:
        args: Version command argument vector.

    Returns:
        First non-empty output line, or ``"unknown"``.
    """
    _, stdout, stderr = run_command(args)
    for line in (stdout + "\n" + stderr).splitlines():
        if line.strip():
            return line.strip()
    return "unknown"


def helm_set_args(values: dict[str, str]) -> list[str]:
    """Build ``--set key=value`` argument pairs for helm.

    Args:
        values: Mapping of helm value paths to their string values.

    Returns:
        Flat list of ``--set`` arguments, in insertion order.
    """
    return [item for key, value in values.items() for item in ("--set", f"{key}={value}")]


def download_script(url: str, timeout: int = INSTALLER_DOWNLOAD_TIMEOUT) -> str:
    """Fetch an installer script body.

    Args:
        url: Installer URL (e.g. ``https://get.k3s.io``).
        timeout: Request timeout in seconds.

    Returns:
        Script text.

    Raises:
        requests.RequestException: If the download fails or returns an error status.
    """
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    return response.text
