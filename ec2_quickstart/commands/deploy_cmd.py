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

"""Interactive end-to-end deployment."""

from __future__ import annotations

from datetime import datetime

import typer

from ec2_quickstart import logger
from ec2_quickstart.config import QuickstartSettings
from ec2_quickstart.errors import QuickstartError
from ec2_quickstart.logs import configure_logging, default_log_path
from ec2_quickstart.orchestrator import run


def deploy(verbose: bool = False) -> None:
    """Prompt for configuration, then install, deploy, and report.

    Raises:
        typer.Exit: Code 0 on success or cancellation, 1 on a fatal error.
    """
    log_file = default_log_path()
    configure_logging(log_file, verbose=verbose)
    logger.info(f"Deployment started at {datetime.now():%Y-%m-%d %H:%M:%S}")
    logger.info(f"Log file: {log_file}")

    try:
        result = run(QuickstartSettings(), log_file=log_file)
    except QuickstartError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(code=1)

    if result.cancelled:
        raise typer.Exit(code=0)
