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

"""Check-then-act step runner for capabilities and one-off steps."""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass

import requests
import sh

from ec2_quickstart import logger
from ec2_quickstart.errors import ExternalCommandFailure, QuickstartError

# Failures an install action may raise that mean "the external command failed".
INSTALL_ERRORS = (sh.ErrorReturnCode, requests.RequestException, OSError, RuntimeError)


class StepOutcome(enum.Enum):
    """Result of running a capability install or a readiness poll."""

    ALREADY_SATISFIED = "already-satisfied"
    NEWLY_SATISFIED = "newly-satisfied"
    FAILED_FATAL = "failed-fatal"
    FAILED_WARNED = "failed-warned"

    @property
    def ok(self) -> bool:
        return self in (StepOutcome.ALREADY_SATISFIED, StepOutcome.NEWLY_SATISFIED)


@dataclass(frozen=True)
class Capability:
    """A named unit of installable software.

    Attributes:
        name: Human-readable name used in log lines and errors.
        probe: Side-effect-free presence check.
        install: Side-effecting install action.
        version: Optional callable returning a version string for logging.
    """

    name: str
    probe: Callable[[], bool]
    install: Callable[[], None]
    version: Callable[[], str] | None = None


def is_present(capability: Capability) -> bool:
    """Run a capability's probe, treating any probe error as absent."""
    try:
        return bool(capability.probe())
    except Exception as exc:
        logger.debug(f"Probe for {capability.name} failed, treating as absent: {exc}")
        return False


def _describe(capability: Capability) -> str:
    if capability.version is None:
        return ""
    try:
        return capability.version()
    except Exception as exc:
        logger.debug(f"Version lookup for {capability.name} failed: {exc}")
        return ""


def ensure_capability(capability: Capability) -> StepOutcome:
    """Install a capability only if its probe reports it absent.

    Args:
        capability: The capability to check and, if needed, install.

    Returns:
        ALREADY_SATISFIED if present before the call, NEWLY_SATISFIED after a
        successful install.

    Raises:
        ExternalCommandFailure: If the install action fails or the capability
            is still absent afterwards.
    """
    if is_present(capability):
        version = _describe(capability)
        logger.info(f"✓ {capability.name} already installed" + (f": {version}" if version else ""))
        return StepOutcome.ALREADY_SATISFIED

    logger.info(f"Installing {capability.name}...")
    try:
        capability.install()
    except QuickstartError:
        raise
    except INSTALL_ERRORS as err:
        raise ExternalCommandFailure(capability.name, _error_detail(err)) from err

    if not is_present(capability):
        raise ExternalCommandFailure(capability.name, "still not present after install")

    logger.info(f"✓ {capability.name} installed successfully")
    version = _describe(capability)
    if version:
        logger.info(f"Version: {version}")
    return StepOutcome.NEWLY_SATISFIED


def run_step(name: str, action: Callable[[], None]) -> StepOutcome:
    """Run an unconditional step under the same fatal failure policy.

    Args:
        name: Step name used in log lines and errors.
        action: Side-effecting procedure.

    Returns:
        NEWLY_SATISFIED on success.

    Raises:
        ExternalCommandFailure: If the action fails.
    """
    try:
        action()
    except QuickstartError:
        raise
    except INSTALL_ERRORS as err:
        raise ExternalCommandFailure(name, _error_detail(err)) from err
    return StepOutcome.NEWLY_SATISFIED


def _error_detail(err: BaseException) -> str:
    """Condense an exception to a single log-friendly line."""
    if isinstance(err, sh.ErrorReturnCode):
        stderr = err.stderr.decode(errors="replace").strip() if err.stderr else ""
        last = stderr.splitlines()[-1] if stderr else ""
        return f"exit code {err.exit_code}" + (f" ({last})" if last else "")
    return str(err)
