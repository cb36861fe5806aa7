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

"""Unichain-Verify repository layout, database init, and service deployment."""

from __future__ import annotations

import os
import shutil
import stat
from pathlib import Path

import sh
import yaml

from ec2_quickstart import logger
from ec2_quickstart.config import DeploymentConfig, QuickstartSettings
from ec2_quickstart.constants import (
    APP_REPO_BRANCH,
    APP_REPO_URL,
    BACKUP_SUFFIX,
    DB_COPY_CM_SCRIPT,
    DB_INIT_SCRIPT,
    DB_INIT_VALUES,
    DB_POSTGRES_CONFIG,
    DEPLOY_INSTALL_SCRIPT,
    NS_APP,
    POSTGRES_CONFIGMAP,
    POSTGRES_DATABASE,
    POSTGRES_HOST,
    POSTGRES_PORT,
    POSTGRES_SECRET_KEY,
    POSTGRES_SECRET_NAME,
    POSTGRES_USER,
    REL_DB_SCRIPTS,
    REL_DEPLOY,
)
from ec2_quickstart.errors import ExternalCommandFailure, MissingPrerequisiteDirectory
from ec2_quickstart.logs import log_command_output


def find_project_root(app_dir_name: str, start: Path | None = None) -> Path:
    """Return the first of ``start`` and its parents that holds ``app_dir_name``.

    Falls back to ``start`` itself so the error names a concrete path.
    """
    start = (start or Path.cwd()).resolve()
    for candidate in (start, *start.parents):
        if (candidate / app_dir_name).is_dir():
            return candidate
    return start


def locate_app_dir(settings: QuickstartSettings) -> Path:
    """Resolve the application repository directory.

    An explicit ``QUICKSTART_PROJECT_ROOT`` is used as is. Otherwise the
    working directory and each of its parents are searched for the
    repository, so the tool can be started from anywhere inside the checkout
    or next to it.

    Args:
        settings: Settings with the project root and directory name.

    Returns:
        Absolute path to the repository.

    Raises:
        MissingPrerequisiteDirectory: If the directory does not exist.
    """
    root = settings.project_root or find_project_root(settings.app_dir_name)
    app_dir = (root / settings.app_dir_name).resolve()
    logger.debug(f"Looking for {settings.app_dir_name} at: {app_dir}")
    if not app_dir.is_dir():
        raise MissingPrerequisiteDirectory(
            app_dir, "set QUICKSTART_PROJECT_ROOT to the directory holding the repository")
    logger.info(f"✓ Found {settings.app_dir_name} at: {app_dir}")
    return app_dir


def require_subdir(app_dir: Path, name: str) -> Path:
    """Return ``app_dir / name``, raising if it is not a directory."""
    path = app_dir / name
    if not path.is_dir():
        raise MissingPrerequisiteDirectory(path, f"{name} directory not found in {app_dir}")
    return path


def check_app_layout(settings: QuickstartSettings) -> Path:
    """Locate the repository and make sure ``db_scripts/`` and ``deploy/`` exist.

    Runs before anything is installed so a wrong checkout aborts early.

    Raises:
        MissingPrerequisiteDirectory: If the repository or a required
            subdirectory is missing.
    """
    app_dir = locate_app_dir(settings)
    for name in (REL_DB_SCRIPTS, REL_DEPLOY):
        require_subdir(app_dir, name)
    return app_dir


def require_script(directory: Path, name: str, step: str) -> Path:
    """Return the script path, raising a step failure if it is missing."""
    path = directory / name
    if not path.is_file():
        raise ExternalCommandFailure(step, f"{name} not found in {directory}")
    return path


def make_executable(*paths: Path) -> None:
    """Add execute bits to each existing path; missing paths are skipped."""
    for path in paths:
        if path.is_file():
            path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


# ============================================================================
# Database init files
# ============================================================================

def init_values(cfg: DeploymentConfig) -> dict:
    """Values consumed by ``init_db.sh``."""
    return {
        "dbUserPasswords": {"dbuserPassword": cfg.db_password.get_secret_value()},
        "databases": {
            POSTGRES_DATABASE: {
                "enabled": True,
                "host": POSTGRES_HOST,
                "port": POSTGRES_PORT,
                "su": {
                    "user": POSTGRES_USER,
                    "secret": {"name": POSTGRES_SECRET_NAME, "key": POSTGRES_SECRET_KEY},
                },
                "dml": 1,
                "repoUrl": APP_REPO_URL,
                "branch": APP_REPO_BRANCH,
            },
        },
    }


def postgres_config_manifest() -> dict:
    """ConfigMap pointing the application at the in-cluster PostgreSQL."""
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": POSTGRES_CONFIGMAP, "namespace": NS_APP},
        "data": {"host": POSTGRES_HOST, "port": str(POSTGRES_PORT)},
    }


def write_db_init_files(cfg: DeploymentConfig, db_dir: Path) -> None:
    """Back up and rewrite the database init values and ConfigMap files.

    Args:
        cfg: Deployment record supplying the database password.
        db_dir: The repository's ``db_scripts`` directory.
    """
    values_path = db_dir / DB_INIT_VALUES
    if values_path.exists():
        shutil.copyfile(values_path, values_path.with_name(values_path.name + BACKUP_SUFFIX))
        logger.debug(f"Backed up {values_path.name}")

    logger.info("Creating database configuration...")
    with open(values_path, "w") as f:
        yaml.safe_dump(init_values(cfg), f, sort_keys=False)
    with open(db_dir / DB_POSTGRES_CONFIG, "w") as f:
        yaml.safe_dump(postgres_config_manifest(), f, sort_keys=False)


def initialise_database(cfg: DeploymentConfig, app_dir: Path) -> None:
    """Render init files and run ``init_db.sh``, confirming its prompt.

    Args:
        cfg: Deployment record.
        app_dir: Application repository root.

    Raises:
        MissingPrerequisiteDirectory: If ``db_scripts`` is missing.
        ExternalCommandFailure: If ``init_db.sh`` exits non-zero.
    """
    db_dir = require_subdir(app_dir, REL_DB_SCRIPTS)
    write_db_init_files(cfg, db_dir)
    make_executable(db_dir / DB_INIT_SCRIPT, db_dir / DB_COPY_CM_SCRIPT)
    script = require_script(db_dir, DB_INIT_SCRIPT, "Database initialization")

    logger.info("Running database initialization...")
    try:
        sh.Command(str(script))(
            _cwd=str(db_dir), _in="Y\n", _out=log_command_output, _err=log_command_output)
    except sh.ErrorReturnCode as err:
        raise ExternalCommandFailure("Database initialization", f"exit code {err.exit_code}") from err
    logger.info("✓ Database initialized successfully")


# ============================================================================
# Service deployment
# ============================================================================

def install_answers(cfg: DeploymentConfig) -> str:
    """Stdin answers for ``install-all.sh``: SSL flag, then domain when SSL is off.

    The script only reads its settings interactively, so these lines must
    match its prompt order.
    """
    lines = [cfg.ssl_answer]
    if not cfg.ssl_enabled:
        lines.append(cfg.domain)
    return "\n".join(lines) + "\n"


def deploy_services(cfg: DeploymentConfig, app_dir: Path) -> None:
    """Run ``install-all.sh`` with the SSL and domain answers.

    Args:
        cfg: Deployment record.
        app_dir: Application repository root.

    Raises:
        MissingPrerequisiteDirectory: If ``deploy`` is missing.
        ExternalCommandFailure: If ``install-all.sh`` exits non-zero.
    """
    deploy_dir = require_subdir(app_dir, REL_DEPLOY)
    logger.info("Making deployment scripts executable...")
    make_executable(*deploy_dir.rglob("*.sh"))
    script = require_script(deploy_dir, DEPLOY_INSTALL_SCRIPT, "Deployment")

    logger.info("Running deployment scripts (this may take several minutes)...")
    env = {**os.environ, "ENABLE_SSL": cfg.ssl_answer, "DOMAIN_NAME": cfg.domain}
    try:
        sh.Command(str(script))(
            _cwd=str(deploy_dir), _in=install_answers(cfg), _env=env,
            _out=log_command_output, _err=log_command_output)
    except sh.ErrorReturnCode as err:
        raise ExternalCommandFailure("Deployment", f"exit code {err.exit_code}") from err
    logger.info("✓ Unichain-Verify services deployed successfully")
