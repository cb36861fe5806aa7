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

"""Install subcommands (docker, k3s, helm, java, maven, postgres)."""

from __future__ import annotations

import typer
from pydantic import SecretStr

from ec2_quickstart import console
from ec2_quickstart.capabilities import (
    docker_capability,
    export_kubeconfig,
    helm_capability,
    java_capability,
    k3s_capability,
    log_nodes,
    maven_capability,
)
from ec2_quickstart.cluster import postgres_capability, postgres_readiness_target, prepare_postgres
from ec2_quickstart.config import QuickstartSettings
from ec2_quickstart.constants import DEFAULT_DB_PASSWORD
from ec2_quickstart.errors import QuickstartError
from ec2_quickstart.orchestrator import check_privileges
from ec2_quickstart.readiness import wait_for_ready
from ec2_quickstart.steps import Capability, ensure_capability, run_step
from ec2_quickstart.utils import require_command

app = typer.Typer(help="Install a single capability.")


def _ensure(capability: Capability) -> None:
    try:
        check_privileges()
        ensure_capability(capability)
    except QuickstartError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def docker() -> None:
    """Install Docker and add the current user to the docker group."""
    _ensure(docker_capability())


@app.command()
def k3s() -> None:
    """Install k3s and wait for the node to become Ready."""
    settings = QuickstartSettings()
    _ensure(k3s_capability(settings))
    export_kubeconfig(settings.kubeconfig)
    log_nodes()


@app.command()
def helm() -> None:
    """Install Helm 3."""
    _ensure(helm_capability())


@app.command()
def java() -> None:
    """Install OpenJDK 21."""
    _ensure(java_capability())


@app.command()
def maven() -> None:
    """Install Maven."""
    _ensure(maven_capability())


@app.command()
def postgres(
    db_password: str | None = typer.Option(
        None, "--db-password", help="Database password (overrides QUICKSTART_DB_PASSWORD)"),
) -> None:
    """Install the PostgreSQL Helm release and wait for its pod."""
    settings = QuickstartSettings()
    if db_password is not None:
        password = SecretStr(db_password)
    else:
        password = settings.db_password or SecretStr(DEFAULT_DB_PASSWORD)

    export_kubeconfig(settings.kubeconfig)
    try:
        check_privileges()
        for cmd in ("helm", "kubectl"):
            require_command(cmd)
        run_step("PostgreSQL chart repository", prepare_postgres)
    except RuntimeError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1)
    _ensure(postgres_capability(password))
    wait_for_ready(postgres_readiness_target(settings))
