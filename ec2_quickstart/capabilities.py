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

"""Host capabilities: system packages, Docker, k3s, Helm, Java, and Maven."""

from __future__ import annotations

import getpass
import os
import tempfile
import time
from functools import partial
from pathlib import Path

import sh

from ec2_quickstart import logger
from ec2_quickstart.config import QuickstartSettings
from ec2_quickstart.constants import (
    BASE_PACKAGES,
    DOCKER_INSTALL_URL,
    HELM_INSTALL_URL,
    JAVA_PACKAGE,
    K3S_BINARY,
    K3S_INSTALL_URL,
    K3S_KUBECONFIG,
    K3S_STARTUP_SLEEP_SECONDS,
    KUBECTL_LINK,
    MAVEN_PACKAGE,
)
from ec2_quickstart.logs import log_command_output
from ec2_quickstart.readiness import ReadinessTarget, wait_for_ready
from ec2_quickstart.steps import Capability
from ec2_quickstart.utils import command_exists, command_version, download_script, run_kubectl

_LOGGED = {"_out": log_command_output, "_err": log_command_output}


# ============================================================================
# System packages
# ============================================================================

def update_system_packages() -> None:
    """Refresh apt indexes, upgrade, and install the base tool set."""
    sh.sudo("apt", "update", **_LOGGED)
    sh.sudo("apt", "upgrade", "-y", **_LOGGED)
    sh.sudo("apt", "install", "-y", *BASE_PACKAGES, **_LOGGED)
    logger.info("System packages updated successfully")


def apt_install(package: str) -> None:
    """Install a single apt package non-interactively."""
    sh.sudo("apt", "install", "-y", package, **_LOGGED)


def _run_installer(url: str, shell: str, sudo: bool = False) -> None:
    """Download an installer script and run it with the given shell.

    Args:
        url: Installer script URL.
        shell: Interpreter to run the script with (``sh`` or ``bash``).
        sudo: Whether to run the interpreter through sudo.
    """
    script = download_script(url)
    with tempfile.NamedTemporaryFile("w", suffix=".sh", delete=False) as handle:
        handle.write(script)
        path = handle.name
    try:
        if sudo:
            sh.sudo(shell, path, **_LOGGED)
        else:
            sh.Command(shell)(path, **_LOGGED)
    finally:
        os.unlink(path)


# ============================================================================
# Docker
# ============================================================================

def install_docker() -> None:
    """Install Docker via the convenience script and enable the service."""
    _run_installer(DOCKER_INSTALL_URL, "sh", sudo=True)
    sh.sudo("usermod", "-aG", "docker", getpass.getuser(), **_LOGGED)
    sh.sudo("systemctl", "enable", "docker", **_LOGGED)
    sh.sudo("systemctl", "start", "docker", **_LOGGED)


def docker_capability() -> Capability:
    return Capability(
        name="Docker",
        probe=partial(command_exists, "docker"),
        install=install_docker,
        version=partial(command_version, ["docker", "--version"]),
    )


# ============================================================================
# k3s
# ============================================================================

def export_kubeconfig(kubeconfig: Path) -> None:
    """Point every later kubectl/helm call at the given kubeconfig."""
    os.environ["KUBECONFIG"] = str(kubeconfig)


def _persist_kubeconfig_export(kubeconfig: Path, bashrc: Path | None = None) -> None:
    """Append a KUBECONFIG export to ~/.bashrc unless one is already present."""
    bashrc = bashrc or Path.home() / ".bashrc"
    existing = bashrc.read_text() if bashrc.exists() else ""
    if "KUBECONFIG" in existing:
        return
    with open(bashrc, "a") as f:
        f.write(f"export KUBECONFIG={kubeconfig}\n")


def setup_kubeconfig(kubeconfig: Path) -> None:
    """Copy the k3s admin kubeconfig into the user's home and export it.

    Args:
        kubeconfig: Destination path, usually ``~/.kube/config``.
    """
    user = getpass.getuser()
    sh.sudo("mkdir", "-p", str(kubeconfig.parent), **_LOGGED)
    sh.sudo("cp", str(K3S_KUBECONFIG), str(kubeconfig), **_LOGGED)
    sh.sudo("chown", f"{user}:{user}", str(kubeconfig), **_LOGGED)
    export_kubeconfig(kubeconfig)
    _persist_kubeconfig_export(kubeconfig)


def ensure_kubectl_link() -> None:
    """Symlink kubectl to the k3s multi-call binary if kubectl is missing."""
    if command_exists("kubectl"):
        return
    try:
        sh.sudo("ln", "-s", str(K3S_BINARY), str(KUBECTL_LINK), **_LOGGED)
    except sh.ErrorReturnCode:
        logger.debug("kubectl symlink already present or not creatable")


def node_readiness_target(settings: QuickstartSettings) -> ReadinessTarget:
    return ReadinessTarget(
        name="k3s nodes",
        namespace=None,
        selector=None,
        kind="nodes",
        timeout=settings.node_ready_timeout,
        fallback_sleep=settings.node_fallback_sleep,
        attempts=settings.readiness_attempts,
        backoff=settings.readiness_backoff,
        fatal=True,
    )


def install_k3s(settings: QuickstartSettings) -> None:
    """Install k3s, wire up kubeconfig, and wait for the node to register.

    Args:
        settings: Settings with the kubeconfig path and node readiness policy.

    Raises:
        ReadinessTimeout: If the node never reports Ready.
    """
    _run_installer(K3S_INSTALL_URL, "sh")
    setup_kubeconfig(settings.kubeconfig)

    logger.info(f"Waiting for k3s to be ready (this may take {K3S_STARTUP_SLEEP_SECONDS}-60 seconds)...")
    time.sleep(K3S_STARTUP_SLEEP_SECONDS)
    ensure_kubectl_link()
    wait_for_ready(node_readiness_target(settings))


def k3s_capability(settings: QuickstartSettings) -> Capability:
    return Capability(
        name="k3s",
        probe=partial(command_exists, "k3s"),
        install=partial(install_k3s, settings),
    )


def log_nodes() -> None:
    """Log ``kubectl get nodes``; best effort."""
    ok, stdout, stderr = run_kubectl(["get", "nodes"])
    if not ok:
        logger.warning(f"Could not list nodes: {stderr.strip()}")
        return
    for line in stdout.splitlines():
        logger.info(f"  {line}")


# ============================================================================
# Helm, Java, Maven
# ============================================================================

def helm_capability() -> Capability:
    return Capability(
        name="Helm",
        probe=partial(command_exists, "helm"),
        install=partial(_run_installer, HELM_INSTALL_URL, "bash"),
        version=partial(command_version, ["helm", "version", "--short"]),
    )


def java_capability() -> Capability:
    return Capability(
        name="Java",
        probe=partial(command_exists, "java"),
        install=partial(apt_install, JAVA_PACKAGE),
        version=partial(command_version, ["java", "-version"]),
    )


def maven_capability() -> Capability:
    return Capability(
        name="Maven",
        probe=partial(command_exists, "mvn"),
        install=partial(apt_install, MAVEN_PACKAGE),
        version=partial(command_version, ["mvn", "-version"]),
    )

