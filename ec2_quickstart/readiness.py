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

"""Bounded readiness polling for Kubernetes nodes and pods."""

from __future__ import annotations

import time
from dataclasses import dataclass

from tenacity import RetryCallState, RetryError, Retrying, retry_if_result, stop_after_attempt

from ec2_quickstart import logger
from ec2_quickstart.constants import DEFAULT_READINESS_ATTEMPTS
from ec2_quickstart.errors import ReadinessTimeout
from ec2_quickstart.steps import StepOutcome
from ec2_quickstart.utils import run_kubectl


@dataclass(frozen=True)
class ReadinessTarget:
    """A Kubernetes selector polled for the Ready condition.

    Attributes:
        name: Human-readable name used in log lines.
        namespace: Namespace to poll, or None for cluster-scoped kinds.
        selector: Label selector, or None to wait on ``--all``.
        kind: Resource kind passed to ``kubectl wait`` (``pod``, ``nodes``).
        timeout: Seconds each ``kubectl wait`` may block.
        fallback_sleep: Seconds to sleep before the next attempt.
        attempts: Maximum number of ``kubectl wait`` calls.
        backoff: Multiplier applied to the sleep after each failed attempt.
        fatal: Whether exhausting all attempts aborts the run.
    """

    name: str
    namespace: str | None
    selector: str | None
    kind: str = "pod"
    timeout: int = 300
    fallback_sleep: int = 30
    attempts: int = DEFAULT_READINESS_ATTEMPTS
    backoff: float = 1.0
    fatal: bool = False

    def wait_args(self) -> list[str]:
        """Build the ``kubectl wait`` arguments for one attempt."""
        args = ["wait", "--for=condition=Ready", self.kind]
        args += ["-l", self.selector] if self.selector else ["--all"]
        if self.namespace:
            args += ["-n", self.namespace]
        args.append(f"--timeout={self.timeout}s")
        return args


def fallback_delay(target: ReadinessTarget, attempt: int) -> float:
    """Seconds to sleep after the given 1-based failed attempt."""
    return target.fallback_sleep * (target.backoff ** (attempt - 1))


def is_ready(target: ReadinessTarget) -> bool:
    """Run one ``kubectl wait``; a missing namespace counts as not ready."""
    ok, _, stderr = run_kubectl(target.wait_args(), timeout=target.timeout + 30)
    if not ok and stderr.strip():
        logger.debug(f"{target.name}: {stderr.strip()}")
    return ok


def log_pod_status(namespace: str | None) -> None:
    """Log ``kubectl get pods`` for a namespace; best effort."""
    if not namespace:
        ok, stdout, _ = run_kubectl(["get", "nodes"])
    else:
        ok, stdout, _ = run_kubectl(["get", "pods", "-n", namespace])
    for line in stdout.splitlines() if ok else []:
        logger.info(f"  {line}")


def wait_for_ready(target: ReadinessTarget) -> StepOutcome:
    """Poll a readiness target with bounded retries and a fallback sleep.

    Each failed attempt logs a warning and the current pod status, then sleeps
    ``fallback_sleep * backoff**(n-1)`` seconds before trying again. A target
    with a single attempt still gets one fallback sleep before giving up.

    Args:
        target: The selector, timeout, and retry policy to poll.

    Returns:
        NEWLY_SATISFIED when ready, FAILED_WARNED when a non-fatal target never
        became ready.

    Raises:
        ReadinessTimeout: If a fatal target never became ready.
    """
    logger.info(f"Waiting for {target.name} to be ready...")

    def _fallback(attempt: int) -> float:
        delay = fallback_delay(target, attempt)
        logger.warning(f"{target.name} not ready yet, checking status...")
        log_pod_status(target.namespace)
        logger.info(f"Waiting additional time ({delay:g}s)...")
        return delay

    def _before_sleep(state: RetryCallState) -> None:
        _fallback(state.attempt_number)

    retrying = Retrying(
        stop=stop_after_attempt(target.attempts),
        wait=lambda state: fallback_delay(target, state.attempt_number),
        retry=retry_if_result(lambda ok: not ok),
        before_sleep=_before_sleep,
        sleep=time.sleep,
    )
    try:
        retrying(is_ready, target)
    except RetryError:
        if target.attempts == 1:
            time.sleep(_fallback(1))
        if target.fatal:
            logger.error(f"{target.name} did not become ready")
            raise ReadinessTimeout(target.name, target.timeout, target.attempts)
        logger.warning(f"{target.name} not ready after {target.attempts} attempt(s); continuing")
        log_pod_status(target.namespace)
        return StepOutcome.FAILED_WARNED

    logger.info(f"✓ {target.name} ready")
    return StepOutcome.NEWLY_SATISFIED
