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

"""Settings, the deployment record, and interactive config resolution/display."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.panel import Panel
from rich.prompt import Prompt

from ec2_quickstart import console, logger
from ec2_quickstart.constants import (
    APP_REPO_BRANCH,
    APP_REPO_URL,
    DEFAULT_APP_DIR_NAME,
    DEFAULT_APP_FALLBACK_SLEEP,
    DEFAULT_APP_READY_TIMEOUT,
    DEFAULT_DB_PASSWORD,
    DEFAULT_METADATA_TIMEOUT,
    DEFAULT_NODE_FALLBACK_SLEEP,
    DEFAULT_NODE_READY_TIMEOUT,
    DEFAULT_POSTGRES_FALLBACK_SLEEP,
    DEFAULT_POSTGRES_READY_TIMEOUT,
    DEFAULT_READINESS_ATTEMPTS,
    PASSWORD_MASK,
    YES_PATTERN,
)
from ec2_quickstart.errors import ConfigurationError


# ============================================================================
# Settings
# ============================================================================

class QuickstartSettings(BaseSettings):
    """Non-interactive tunables, auto-loaded from QUICKSTART_* env vars.

    Attributes:
        project_root: Directory holding the application repository, or None to
            search the working directory and its parents.
        app_dir_name: Name of the application repository directory.
        kubeconfig: Kubeconfig path exported for kubectl and helm.
        metadata_timeout: EC2 metadata request timeout in seconds.
        node_ready_timeout: Seconds to wait for k3s nodes per attempt.
        node_fallback_sleep: Seconds to sleep before re-polling nodes.
        postgres_ready_timeout: Seconds to wait for PostgreSQL pods per attempt.
        postgres_fallback_sleep: Seconds to sleep before re-polling PostgreSQL.
        app_ready_timeout: Seconds to wait for application pods per attempt.
        app_fallback_sleep: Seconds to sleep before re-polling application pods.
        readiness_attempts: Poll attempts per readiness target.
        readiness_backoff: Multiplier applied to each successive fallback sleep.
        domain: Default answer for the domain prompt, or None.
        ssl: Default answer for the SSL prompt.
        db_password: Default answer for the database password prompt, or None.
    """

    model_config = SettingsConfigDict(env_prefix="QUICKSTART_", extra="ignore")

    project_root: Path | None = None
    app_dir_name: str = DEFAULT_APP_DIR_NAME
    kubeconfig: Path = Field(default_factory=lambda: Path.home() / ".kube" / "config")
    metadata_timeout: float = Field(default=DEFAULT_METADATA_TIMEOUT, gt=0, le=30)
    node_ready_timeout: int = Field(default=DEFAULT_NODE_READY_TIMEOUT, ge=1)
    node_fallback_sleep: int = Field(default=DEFAULT_NODE_FALLBACK_SLEEP, ge=0)
    postgres_ready_timeout: int = Field(default=DEFAULT_POSTGRES_READY_TIMEOUT, ge=1)
    postgres_fallback_sleep: int = Field(default=DEFAULT_POSTGRES_FALLBACK_SLEEP, ge=0)
    app_ready_timeout: int = Field(default=DEFAULT_APP_READY_TIMEOUT, ge=1)
    app_fallback_sleep: int = Field(default=DEFAULT_APP_FALLBACK_SLEEP, ge=0)
    readiness_attempts: int = Field(default=DEFAULT_READINESS_ATTEMPTS, ge=1, le=10)
    readiness_backoff: float = Field(default=1.0, ge=1.0, le=4.0)
    domain: str | None = None
    ssl: bool = False
    db_password: SecretStr | None = None


# ============================================================================
# Deployment record
# ============================================================================

@dataclass(frozen=True)
class DeploymentConfig:
    """Resolved deployment parameters, created once per run.

    Attributes:
        domain: Domain name or IP address the application is served on.
        ssl_enabled: Whether a valid SSL certificate is available.
        db_password: PostgreSQL password.
        public_ip: Public IP detected from EC2 metadata, or None.
    """

    domain: str
    ssl_enabled: bool
    db_password: SecretStr
    public_ip: str | None = None

    @property
    def ssl_answer(self) -> str:
        """SSL answer in the form the deploy scripts expect (``Y`` / ``n``)."""
        return "Y" if self.ssl_enabled else "n"

    @property
    def host(self) -> str:
        """Address used for plain HTTP endpoints."""
        return self.public_ip or self.domain


def is_yes(answer: str | None) -> bool:
    """Return True only for a single ``y`` or ``Y``."""
    return bool(answer) and re.match(YES_PATTERN, answer.strip()) is not None


# ============================================================================
# Resolution
# ============================================================================

def resolve_domain(answer: str | None, env_domain: str | None, public_ip: str | None) -> str:
    """Pick the domain by priority: answer > environment > detected IP.

    Args:
        answer: Value typed at the prompt, possibly empty.
        env_domain: QUICKSTART_DOMAIN value, or None.
        public_ip: Detected EC2 public IP, or None.

    Returns:
        The resolved domain or IP.

    Raises:
        ConfigurationError: If no source yields a value.
    """
    for candidate in (answer, env_domain, public_ip):
        if candidate and candidate.strip():
            return candidate.strip()
    raise ConfigurationError("Could not determine domain/IP. Please enter manually.")


def collect_config(settings: QuickstartSettings, public_ip: str | None) -> DeploymentConfig:
    """Prompt for domain, SSL, and database password.

    Resolution priority: prompt answer > QUICKSTART_* environment variables > defaults.

    Args:
        settings: Loaded settings supplying environment defaults.
        public_ip: Detected EC2 public IP, or None.

    Returns:
        The immutable deployment record.

    Raises:
        ConfigurationError: If no domain or IP can be resolved.
    """
    console.print(Panel.fit("Unichain-Verify Deployment Configuration", style="bold blue"))

    if public_ip:
        logger.info(f"Detected EC2 Public IP: {public_ip}")
    else:
        logger.warning("Could not detect EC2 public IP")

    fallback = settings.domain or public_ip
    question = "Enter your domain name"
    if fallback:
        question += f" (or press Enter to use {fallback})"
    answer = Prompt.ask(question, default="", show_default=False, console=console)
    domain = resolve_domain(answer, settings.domain, public_ip)
    if not answer.strip():
        logger.info(f"Using {'configured domain' if settings.domain else 'EC2 public IP'}: {domain}")

    ssl_answer = Prompt.ask("Do you have a valid SSL certificate? (y/n)",
                            default="y" if settings.ssl else "n", console=console)
    ssl_enabled = is_yes(ssl_answer)
    if ssl_enabled:
        logger.info("SSL enabled")
    else:
        logger.warning("SSL disabled. This is only recommended for development.")

    default_password = settings.db_password.get_secret_value() if settings.db_password else DEFAULT_DB_PASSWORD
    password = Prompt.ask("Database password", default=default_password, password=True,
                          show_default=False, console=console)
    logger.info("Database password configured")

    return DeploymentConfig(
        domain=domain,
        ssl_enabled=ssl_enabled,
        db_password=SecretStr(password or default_password),
        public_ip=public_ip,
    )


def display_config(cfg: DeploymentConfig) -> None:
    """Log the configuration summary with the password masked.

    Args:
        cfg: Resolved deployment record.
    """
    logger.info("Configuration Summary:")
    logger.info(f"  Domain/IP: {cfg.domain}")
    logger.info(f"  SSL Enabled: {cfg.ssl_answer}")
    logger.info(f"  DB Password: {PASSWORD_MASK}")
    logger.info(f"  Repository: {APP_REPO_URL}")
    logger.info(f"  Branch: {APP_REPO_BRANCH}")


def confirm_deployment() -> bool:
    """Ask for the final go/no-go; the default answer is yes."""
    return is_yes(Prompt.ask("Continue with deployment? (y/n)", default="y", console=console))
