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

"""
cli.py - EC2 quickstart for Unichain-Verify.

Subcommands:
    deploy     Interactive end-to-end deployment (the default)
    install    Install one capability (docker, k3s, helm, java, maven, postgres)
    status     Re-render the access summary and run verification

Examples:
    # Full interactive deployment
    ec2-quickstart

    # Install only k3s
    ec2-quickstart install k3s

    # Check an existing deployment served over HTTPS
    ec2-quickstart status --domain verify.example.com --ssl

Environment Variables:
    QUICKSTART_DOMAIN, QUICKSTART_SSL, QUICKSTART_DB_PASSWORD and more (see
    QuickstartSettings).
    QUICKSTART_PROJECT_ROOT names the directory that holds unichain-verify/.
    When unset, the working directory and its parents are searched, so run
    the tool from inside the checkout or from the directory next to it.
"""

from __future__ import annotations

import typer

from ec2_quickstart.commands import deploy_cmd, install_cmd, status_cmd
from ec2_quickstart.logs import configure_logging

app = typer.Typer(
    help="Provision a single EC2 host and deploy Unichain-Verify.",
    invoke_without_command=True,
)


@app.callback()
def _main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show command output on the console"),
) -> None:
    """Run the interactive deployment when no subcommand is given."""
    if ctx.invoked_subcommand is None:
        deploy_cmd.deploy(verbose=verbose)
        return
    configure_logging(None, verbose=verbose)
    ctx.obj = {"verbose": verbose}


@app.command()
def deploy(ctx: typer.Context) -> None:
    """Prompt for configuration, then install, deploy, and report.

    The unichain-verify checkout is taken from QUICKSTART_PROJECT_ROOT, or found
    by searching the working directory and its parents.
    """
    deploy_cmd.deploy(verbose=bool(ctx.obj and ctx.obj.get("verbose")))


app.add_typer(install_cmd.app, name="install")
app.command("status")(status_cmd.status)


if __name__ == "__main__":
    app()
