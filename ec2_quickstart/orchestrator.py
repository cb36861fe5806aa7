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

"""Orchestration of the provisioning run, from configuration to report."""

from __future__ import annotations

import enum
import os
import time
from dataclasses import dataclass, field
from pathlib import Path

from ec2_quickstart import logger
from ec2_quickstart.application import check_app_layout, deploy_services, initialise_database
from ec2_quickstart.capabilities import (
    docker_capability,
    export_kubeconfig,
    helm_capability,
    java_capability,
    k3s_capability,
    log_nodes,
    maven_capability,
    update_system_packages,
)
from ec2_quickstart.cluster import (
    postgres_capability,
    postgres_readiness_target,
    prepare_postgres,
    setup_config_server,
)
from ec2_quickstart.config import (
    DeploymentConfig,
    QuickstartSettings,
    collect_config,
    confirm_deployment,
    display_config,
)
from ec2_quickstart.constants import (
    APP_NAMESPACE_SETTLE_SECONDS,
    LABEL_VERIFY_SERVICE,
    LABEL_VERIFY_UI,
    NS_APP,
)
from ec2_quickstart.errors import PrivilegeViolation, QuickstartError
from ec2_quickstart.logs import section
from ec2_quickstart.metadata import detect_public_ip
from ec2_quickstart.readiness import ReadinessTarget, log_pod_status, wait_for_ready
from ec2_quickstart.report import collect_access_info, render_footer, render_summary, run_verification
from ec2_quickstart.steps import StepOutcome, ensure_capability, run_step
from ec2_quickstart.utils import run_kubectl


class Phase(enum.Enum):
    """States of a provisioning run."""

    COLLECTING_CONFIG = "collecting-config"
    CONFIRMED = "confirmed"
    INSTALLING = "installing"
    DEPLOYING_APPLICATION = "deploying-application"
    POLLING_READINESS = "polling-readiness"
    REPORTING = "reporting"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class DeploymentRun:
    """Progress of a single run: phase history and per-step outcomes.

    Attributes:
        phase: Current phase.
        history: Every phase entered, in order.
        outcomes: ``(step name, outcome)`` pairs, in order.
        config: Deployment record once collected, else None.
        app_dir: Application repository root once located, else None.
        cancelled: Whether the operator declined the confirmation.
        failed_step: Name of the step that aborted the run, or None.
    """

    phase: Phase = Phase.COLLECTING_CONFIG
    history: list[Phase] = field(default_factory=lambda: [Phase.COLLECTING_CONFIG])
    outcomes: list[tuple[str, StepOutcome]] = field(default_factory=list)
    config: DeploymentConfig | None = None
    app_dir: Path | None = None
    cancelled: bool = False
    failed_step: str | None = None

    def enter(self, phase: Phase) -> None:
        self.phase = phase
        self.history.append(phase)
        logger.debug(f"Phase: {phase.value}")

    def record(self, step: str, outcome: StepOutcome) -> StepOutcome:
        self.outcomes.append((step, outcome))
        return outcome

    def warnings(self) -> list[str]:
        return [step for step, outcome in self.outcomes if outcome is StepOutcome.FAILED_WARNED]


def check_privileges() -> None:
    """Refuse to run as root; sudo is used per command instead.

    Raises:
        PrivilegeViolation: If the effective user is root.
    """
    if os.geteuid() == 0:
        raise PrivilegeViolation("Please do not run this script as root")


def app_readiness_targets(settings: QuickstartSettings) -> list[ReadinessTarget]:
    """Readiness targets for the verify service and UI pods."""
    return [
        ReadinessTarget(
            name=name,
            namespace=NS_APP,
            selector=selector,
            timeout=settings.app_ready_timeout,
            fallback_sleep=settings.app_fallback_sleep,
            attempts=settings.readiness_attempts,
            backoff=settings.readiness_backoff,
        )
        for name, selector in (("verify-service", LABEL_VERIFY_SERVICE), ("verify-ui", LABEL_VERIFY_UI))
    ]


# ============================================================================
# Phases
# ============================================================================

def _run_installs(deployment: DeploymentRun, cfg: DeploymentConfig, settings: QuickstartSettings) -> None:
    """Install host capabilities, PostgreSQL, and the config server, in order."""
    section("Step 1: Updating system packages")
    deployment.record("system-packages", run_step("System package update", update_system_packages))

    section("Step 2: Installing Docker")
    deployment.record("docker", ensure_capability(docker_capability()))

    section("Step 3: Installing k3s (Lightweight Kubernetes)")
    deployment.record("k3s", ensure_capability(k3s_capability(settings)))
    export_kubeconfig(settings.kubeconfig)
    log_nodes()

    section("Step 4: Installing Helm")
    deployment.record("helm", ensure_capability(helm_capability()))

    section("Step 5: Installing Java 21 and Maven")
    deployment.record("java", ensure_capability(java_capability()))
    deployment.record("maven", ensure_capability(maven_capability()))

    section("Step 6: Installing PostgreSQL on Kubernetes")
    run_step("PostgreSQL chart repository", prepare_postgres)
    deployment.record("postgres", ensure_capability(postgres_capability(cfg.db_password)))
    deployment.record("postgres-ready", wait_for_ready(postgres_readiness_target(settings)))

    section("Step 7: Setting up config server")
    deployment.record("config-server", run_step("Config server ConfigMap", lambda: setup_config_server(cfg)))


def _run_application_deploy(deployment: DeploymentRun, cfg: DeploymentConfig) -> None:
    """Initialise the database and deploy services from the located repository."""
    section("Step 9: Initializing database")
    deployment.record(
        "database", run_step("Database initialization", lambda: initialise_database(cfg, deployment.app_dir)))

    section("Step 10: Deploying Unichain-Verify services")
    deployment.record("deploy", run_step("Deployment", lambda: deploy_services(cfg, deployment.app_dir)))


def _run_readiness(deployment: DeploymentRun, settings: QuickstartSettings) -> None:
    """Poll application pods; failures only warn."""
    section("Step 11: Waiting for pods to be ready (this may take 5-10 minutes)")
    time.sleep(APP_NAMESPACE_SETTLE_SECONDS)

    logger.info("Checking pod status...")
    ok, _, _ = run_kubectl(["get", "pods", "-n", NS_APP])
    if ok:
        log_pod_status(NS_APP)
    else:
        logger.warning(f"Namespace {NS_APP} not ready yet, waiting...")

    for target in app_readiness_targets(settings):
        deployment.record(f"{target.name}-ready", wait_for_ready(target))

    if deployment.warnings():
        logger.warning(f"Continuing without confirmed readiness for: {', '.join(deployment.warnings())}")
    else:
        logger.info("✓ Pods are ready")


def _run_report(deployment: DeploymentRun, cfg: DeploymentConfig, log_file: Path | None, started_at: float) -> None:
    """Render the summary and run verification; errors only warn."""
    try:
        render_summary(cfg, collect_access_info(cfg), deployment.app_dir, log_file)
        section("Step 13: Running verification tests")
        run_verification()
        render_footer(started_at)
    except Exception as exc:
        logger.warning(f"Could not render the full summary: {exc}")


# ============================================================================
# Entry points
# ============================================================================

def provision(
    cfg: DeploymentConfig,
    settings: QuickstartSettings,
    deployment: DeploymentRun | None = None,
    log_file: Path | None = None,
    started_at: float | None = None,
) -> DeploymentRun:
    """Run installs, deployment, readiness polling, and reporting.

    Args:
        cfg: Confirmed deployment record.
        settings: Loaded settings.
        deployment: Run to continue, or None to start one in the confirmed state.
        log_file: Deployment log path shown in the summary.
        started_at: ``time.monotonic()`` at startup, or None for now.

    Returns:
        The finished run.

    Raises:
        MissingPrerequisiteDirectory: If the repository layout is incomplete;
            nothing has been installed at that point.
        QuickstartError: If an install or deploy step fails; the run is
            left in the ABORTED phase with ``failed_step`` set.
    """
    started_at = time.monotonic() if started_at is None else started_at
    if deployment is None:
        deployment = DeploymentRun()
        deployment.enter(Phase.CONFIRMED)
    deployment.config = cfg

    try:
        section("Step 0: Locating unichain-verify repository")
        deployment.app_dir = check_app_layout(settings)
        deployment.enter(Phase.INSTALLING)
        _run_installs(deployment, cfg, settings)
        deployment.enter(Phase.DEPLOYING_APPLICATION)
        _run_application_deploy(deployment, cfg)
    except QuickstartError as err:
        deployment.failed_step = getattr(err, "step", None) or getattr(err, "target", None) or deployment.phase.value
        deployment.record(deployment.failed_step, StepOutcome.FAILED_FATAL)
        deployment.enter(Phase.ABORTED)
        logger.error(f"{deployment.failed_step} failed: {err}")
        raise

    deployment.enter(Phase.POLLING_READINESS)
    _run_readiness(deployment, settings)

    deployment.enter(Phase.REPORTING)
    _run_report(deployment, cfg, log_file, started_at)

    deployment.enter(Phase.DONE)
    return deployment


def run(settings: QuickstartSettings, log_file: Path | None = None) -> DeploymentRun:
    """Collect configuration interactively, confirm, then provision.

    Args:
        settings: Loaded settings.
        log_file: Deployment log path.

    Returns:
        The finished run, or a cancelled run if the operator declined.

    Raises:
        PrivilegeViolation: If started as root.
        ConfigurationError: If no domain or IP can be resolved.
        QuickstartError: If an install or deploy step fails.
    """
    started_at = time.monotonic()
    check_privileges()

    deployment = DeploymentRun()
    public_ip = detect_public_ip(settings.metadata_timeout)
    cfg = collect_config(settings, public_ip)
    deployment.config = cfg
    display_config(cfg)

    if not confirm_deployment():
        deployment.cancelled = True
        logger.info("Deployment cancelled by user")
        return deployment

    deployment.enter(Phase.CONFIRMED)
    return provision(cfg, settings, deployment=deployment, log_file=log_file, started_at=started_at)
