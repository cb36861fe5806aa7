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

"""Status subcommand: access summary and verification for an existing deployment."""

from __future__ import annotations

import typer
from pydantic import SecretStr

from ec2_quickstart import console
from ec2_quickstart.application import locate_app_dir
from ec2_quickstart.capabilities import export_kubeconfig
from ec2_quickstart.config import DeploymentConfig, QuickstartSettings, resolve_domain
from ec2_quickstart.constants import DEFAULT_DB_PASSWORD
from ec2_quickstart.errors import ConfigurationError, MissingPrerequisiteDirectory
from ec2_quickstart.metadata import detect_public_ip
from ec2_quickstart.report import collect_access_info, render_summary, run_verification


def status(
    domain: str | None = typer.Option(None, "--domain", help="Domain or IP (overrides QUICKSTART_DOMAIN)"),
    ssl: bool = typer.Option(False, "--ssl", help="Render HTTPS endpoints for the domain"),
) -> None:
    """Re-render the access summary and run the verification checks.

    Exits 1 if no domain can be resolved or the backend health check fails.
    Management commands are shown when the unichain-verify checkout is found
    via QUICKSTART_PROJECT_ROOT or the working directory and its parents.
    """
    settings = QuickstartSettings()
    public_ip = detect_public_ip(settings.metadata_timeout)
    try:
        resolved = resolve_domain(domain, settings.domain, public_ip)
    except ConfigurationError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1)

    cfg = DeploymentConfig(
        domain=resolved,
        ssl_enabled=ssl or settings.ssl,
        db_password=settings.db_password or SecretStr(DEFAULT_DB_PASSWORD),
        public_ip=public_ip,
    )
    try:
        app_dir = locate_app_dir(settings)
    except MissingPrerequisiteDirectory:
        app_dir = None

    export_kubeconfig(settings.kubeconfig)
    render_summary(cfg, collect_access_info(cfg), app_dir, None)
    if not run_verification(settle_seconds=0):
        raise typer.Exit(code=1)
