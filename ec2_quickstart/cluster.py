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

"""Cluster-side probes, PostgreSQL release, and the cross-service ConfigMap."""

from __future__ import annotations

from functools import partial

import sh
import yaml
from pydantic import SecretStr

from ec2_quickstart import logger
from ec2_quickstart.config import DeploymentConfig, QuickstartSettings
from ec2_quickstart.constants import (
    HELM_CHART_POSTGRES,
    HELM_RELEASE_POSTGRES,
    HELM_REPO_BITNAMI,
    HELM_REPO_BITNAMI_URL,
    LABEL_POSTGRES,
    NS_CONFIG_SERVER,
    NS_POSTGRES,
    POSTGRES_DATABASE,
    POSTGRES_HOST,
    POSTGRES_INSTALL_TIMEOUT,
    POSTGRES_PERSISTENCE_SIZE,
    POSTGRES_REQUEST_CPU,
    POSTGRES_REQUEST_MEMORY,
    POSTGRES_USER,
    REDIS_HOST,
    STACK_CONFIGMAP,
)
from ec2_quickstart.logs import log_command_output
from ec2_quickstart.readiness import ReadinessTarget
from ec2_quickstart.steps import Capability
from ec2_quickstart.utils import helm_set_args, run_command, run_kubectl

_LOGGED = {"_out": log_command_output, "_err": log_command_output}


# ============================================================================
# Probes
# ============================================================================

def namespace_exists(namespace: str) -> bool:
    """Return True if the namespace exists; any kubectl failure means absent."""
    ok, _, _ = run_kubectl(["get", "namespace", namespace])
    return ok


def helm_release_exists(release: str, namespace: str) -> bool:
    """Return True if ``helm status`` finds the release in the namespace."""
    ok, _, _ = run_command(["helm", "status", release, "-n", namespace])
    return ok


def ensure_namespace(namespace: str) -> None:
    """Create a namespace unless it already exists.

    Args:
        namespace: Kubernetes namespace name.

    Raises:
        sh.ErrorReturnCode: If namespace creation fails.
    """
    if namespace_exists(namespace):
        return
    sh.kubectl("create", "namespace", namespace, **_LOGGED)
    logger.info(f"Created namespace: {namespace}")


def apply_manifest(manifest: dict) -> None:
    """Create or update a resource with ``kubectl apply -f -``."""
    sh.kubectl("apply", "-f", "-", _in=yaml.safe_dump(manifest, sort_keys=False), **_LOGGED)


# ============================================================================
# PostgreSQL
# ============================================================================

def add_bitnami_repo() -> None:
    """Register and refresh the Bitnami chart repository."""
    sh.helm("repo", "add", HELM_REPO_BITNAMI, HELM_REPO_BITNAMI_URL, "--force-update", **_LOGGED)
    sh.helm("repo", "update", **_LOGGED)


def postgres_helm_values(db_password: SecretStr) -> dict[str, str]:
    """Helm ``--set`` values for the PostgreSQL release."""
    password = db_password.get_secret_value()
    return {
        "auth.postgresPassword": password,
        "auth.username": POSTGRES_USER,
        "auth.password": password,
        "auth.database": POSTGRES_DATABASE,
        "primary.persistence.size": POSTGRES_PERSISTENCE_SIZE,
        "primary.resources.requests.memory": POSTGRES_REQUEST_MEMORY,
        "primary.resources.requests.cpu": POSTGRES_REQUEST_CPU,
    }


def install_postgres(db_password: SecretStr) -> None:
    """Install the Bitnami PostgreSQL chart and wait for the release.

    Args:
        db_password: Password for the postgres superuser and application user.
    """
    logger.info("Installing PostgreSQL (this may take a few minutes)...")
    sh.helm(
        "install", HELM_RELEASE_POSTGRES, HELM_CHART_POSTGRES,
        "--namespace", NS_POSTGRES,
        *helm_set_args(postgres_helm_values(db_password)),
        "--wait", f"--timeout={POSTGRES_INSTALL_TIMEOUT}",
        **_LOGGED,
    )


def postgres_capability(db_password: SecretStr) -> Capability:
    return Capability(
        name="PostgreSQL",
        probe=partial(helm_release_exists, HELM_RELEASE_POSTGRES, NS_POSTGRES),
        install=partial(install_postgres, db_password),
    )


def prepare_postgres() -> None:
    """Add the chart repository and make sure the namespace exists."""
    add_bitnami_repo()
    ensure_namespace(NS_POSTGRES)


def postgres_readiness_target(settings: QuickstartSettings) -> ReadinessTarget:
    return ReadinessTarget(
        name="PostgreSQL",
        namespace=NS_POSTGRES,
        selector=LABEL_POSTGRES,
        timeout=settings.postgres_ready_timeout,
        fallback_sleep=settings.postgres_fallback_sleep,
        attempts=settings.readiness_attempts,
        backoff=settings.readiness_backoff,
    )


# ============================================================================
# Config server
# ============================================================================

def stack_configmap_manifest(cfg: DeploymentConfig) -> dict:
    """Build the ConfigMap holding cross-service host names.

    Args:
        cfg: Deployment record supplying the application host.

    Returns:
        Kubernetes ConfigMap resource as a dictionary ready for YAML serialization.
    """
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": STACK_CONFIGMAP, "namespace": NS_CONFIG_SERVER},
        "data": {
            "injiverify-host": cfg.domain,
            "postgres-host": POSTGRES_HOST,
            "redis-host": REDIS_HOST,
        },
    }


def setup_config_server(cfg: DeploymentConfig) -> None:
    """Create the config-server namespace and apply the stack ConfigMap."""
    ensure_namespace(NS_CONFIG_SERVER)
    manifest = stack_configmap_manifest(cfg)
    apply_manifest(manifest)
    logger.info("✓ ConfigMap created successfully")
    for key, value in manifest["data"].items():
        logger.info(f"  {key}: {value}")
