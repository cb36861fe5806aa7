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

"""Error taxonomy for the provisioning run."""

from __future__ import annotations


class QuickstartError(RuntimeError):
    """Base class for failures that abort the run."""


class PrivilegeViolation(QuickstartError):
    """Raised when the tool is started as root."""


class ConfigurationError(QuickstartError):
    """Raised when no domain or IP can be resolved."""


class MissingPrerequisiteDirectory(QuickstartError):
    """Raised when the application repository layout is incomplete."""

    def __init__(self, path, hint: str = "", step: str = "Locate repository") -> None:
        self.path = path
        self.step = step
        message = f"Directory not found: {path}"
        if hint:
            message = f"{message} ({hint})"
        super().__init__(message)


class ExternalCommandFailure(QuickstartError):
    """Raised when an install, init, or deploy step exits non-zero."""

    def __init__(self, step: str, detail: str = "") -> None:
        self.step = step
        self.detail = detail
        message = f"Step '{step}' failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ReadinessTimeout(QuickstartError):
    """Raised when a readiness target marked fatal never becomes ready."""

    def __init__(self, target: str, timeout: int, attempts: int) -> None:
        self.target = target
        super().__init__(f"{target} not ready after {attempts} attempt(s) of {timeout}s")
