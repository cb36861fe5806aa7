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

"""Access summary, troubleshooting hints, and post-deploy verification."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from rich.panel import Panel

from ec2_quickstart import console, logger
from ec2_quickstart.config import DeploymentConfig
from ec2_quickstart.constants import (
    DEPLOY_DELETE_SCRIPT,
    DEPLOY_RESTART_SCRIPT,
    DEPLOY_VERIFY_SERVICE,
    LABEL_VERIFY_SERVICE,
    LABEL_VERIFY_UI,
    NODE_PORT_JSONPATH,
    NODE_PORT_MISSING,
    NS_APP,
    REL_DEPLOY,
    SERVICE_PORT_FORWARD,
    SVC_VERIFY_SERVICE,
    SVC_VERIFY_UI,
    UI_PORT_FORWARD,
    VERIFICATION_SETTLE_SECONDS,
    VERIFY_API_PATH,
    VERIFY_HEALTH_URL,
)
from ec2_quickstart.utils import run_kubectl


@dataclass(frozen=True)
class AccessInfo:
    """Endpoints rendered in the final summary.

    Attributes:
        ui_url: Browser URL of the verify UI.
        api_url: Base URL of the verify API.
        ui_port: NodePort of the UI service, or ``N/A``.
        service_port: NodePort of the API service, or ``N/A``.
    """

    ui_url: str
    api_url: str
    ui_port: str
    service_port: str

    @property
    def ports_known(self) -> bool:
        return NODE_PORT_MISSING not in (self.ui_port, self.service_port)


def query_node_port(service: str, namespace: str = NS_APP) -> str:
    """Return the first NodePort of a service, or ``N/A`` if unavailable."""
    ok, stdout, _ = run_kubectl(["get", "svc", "-n", namespace, service, "-o", NODE_PORT_JSONPATH])
    port = stdout.strip()
    return port if ok and port else NODE_PORT_MISSING


def build_access_info(cfg: DeploymentConfig, ui_port: str, service_port: str) -> AccessInfo:
    """Build UI and API URLs for the SSL or plain-HTTP layout.

    With SSL the domain is served on the default HTTPS port; without it both
    services are reached on their NodePorts at the public IP.

    Args:
        cfg: Deployment record.
        ui_port: NodePort of the UI service.
        service_port: NodePort of the API service.

    Returns:
        The rendered endpoints.
    """
    if cfg.ssl_enabled:
        base = f"https://{cfg.domain}"
        return AccessInfo(base, f"{base}{VERIFY_API_PATH}", ui_port, service_port)
    return AccessInfo(
        ui_url=f"http://{cfg.host}:{ui_port}",
        api_url=f"http://{cfg.host}:{service_port}{VERIFY_API_PATH}",
        ui_port=ui_port,
        service_port=service_port,
    )


def collect_access_info(cfg: DeploymentConfig) -> AccessInfo:
    """Query live NodePorts and build the access endpoints."""
    return build_access_info(
        cfg,
        ui_port=query_node_port(SVC_VERIFY_UI),
        service_port=query_node_port(SVC_VERIFY_SERVICE),
    )


def _echo(*lines: str) -> None:
    for line in lines:
        console.print(f"  {line}", highlight=False, markup=False)
        logger.info(f"  {line}", extra={"console": False})
    console.print()


def render_summary(cfg: DeploymentConfig, info: AccessInfo, app_dir: Path | None, log_file: Path | None) -> None:
    """Print access URLs and troubleshooting commands.

    Args:
        cfg: Deployment record.
        info: Endpoints built by :func:`build_access_info`.
        app_dir: Application repository root, or None if unknown.
        log_file: Deployment log path, or None.
    """
    console.print(Panel.fit("Deployment Complete! 🎉", style="bold green"))

    logger.info("📍 Access Information:")
    _echo(f"🌐 UI:  {info.ui_url}", f"🔌 API: {info.api_url}")

    logger.info("🔍 Health Check Commands:")
    _echo(f"kubectl get pods -n {NS_APP}", f"curl {VERIFY_HEALTH_URL}  # (via port-forward)")

    logger.info("📋 View Logs:")
    _echo(f"kubectl logs -n {NS_APP} -l {LABEL_VERIFY_SERVICE} -f",
          f"kubectl logs -n {NS_APP} -l {LABEL_VERIFY_UI} -f")

    logger.info("🔧 Port Forward (for direct testing):")
    _echo(f"kubectl port-forward -n {NS_APP} svc/{SVC_VERIFY_UI} {UI_PORT_FORWARD} &",
          f"kubectl port-forward -n {NS_APP} svc/{SVC_VERIFY_SERVICE} {SERVICE_PORT_FORWARD} &")

    if app_dir is not None:
        deploy_dir = app_dir / REL_DEPLOY
        logger.info("⚙️  Management Commands:")
        _echo(f"Restart: cd {deploy_dir} && ./{DEPLOY_RESTART_SCRIPT}",
              f"Delete:  cd {deploy_dir} && ./{DEPLOY_DELETE_SCRIPT}",
              f"Status:  kubectl get all -n {NS_APP}")

    if info.ports_known:
        logger.warning("⚠️  SECURITY GROUP PORTS:")
        _echo("Make sure these ports are open in your EC2 Security Group:",
              f"  - {info.service_port} (verify-service)",
              f"  - {info.ui_port} (verify-ui)",
              "  - Or use port-forward for testing")

    if log_file is not None:
        logger.info(f"📝 Deployment log saved to: {log_file}")


def _log_kubectl(args: list[str]) -> bool:
    ok, stdout, _ = run_kubectl(args)
    if ok:
        for line in stdout.splitlines():
            logger.info(f"  {line}")
    return ok


def run_verification(settle_seconds: int = VERIFICATION_SETTLE_SECONDS) -> bool:
    """Check pods, backend health, services, and ingress; never raises.

    Args:
        settle_seconds: Seconds to wait before the first check.

    Returns:
        True if the backend health endpoint answered.
    """
    console.print(Panel.fit("Running verification tests", style="bold blue"))
    time.sleep(settle_seconds)

    logger.info("📊 Pod Status:")
    _log_kubectl(["get", "pods", "-n", NS_APP])

    logger.info("🏥 Testing backend service health...")
    healthy, _, _ = run_kubectl(
        ["exec", "-n", NS_APP, DEPLOY_VERIFY_SERVICE, "--", "curl", "-s", VERIFY_HEALTH_URL])
    if healthy:
        logger.info("✅ Backend service is healthy!")
    else:
        logger.warning("⚠️  Backend service health check failed")
        logger.warning("This might be normal if pods are still starting")
        logger.warning(f"Check logs: kubectl logs -n {NS_APP} -l {LABEL_VERIFY_SERVICE}")

    logger.info("🔌 Services:")
    _log_kubectl(["get", "svc", "-n", NS_APP])

    logger.info("🌐 Ingress/Gateway:")
    if not (_log_kubectl(["get", "ingress", "-n", NS_APP]) or _log_kubectl(["get", "gateway", "-n", NS_APP])):
        logger.info("  No ingress configured (using NodePort)")
    return healthy


def render_footer(started_at: float) -> None:
    """Print completion time, elapsed seconds, and next steps.

    Args:
        started_at: ``time.monotonic()`` value captured at startup.
    """
    console.print(Panel.fit("✅ Setup Completed Successfully!", style="bold green"))
    logger.info(f"⏰ Deployment completed at: {datetime.now():%Y-%m-%d %H:%M:%S}")
    logger.info(f"⏱️  Total time: {int(time.monotonic() - started_at)} seconds")
    logger.info("🚀 Next Steps:")
    _echo("1. Wait 2-3 minutes for all pods to be fully ready",
          f"2. Check pod status: kubectl get pods -n {NS_APP}",
          "3. Access the UI in your browser using the URL above",
          "4. Test QR code verification functionality")
