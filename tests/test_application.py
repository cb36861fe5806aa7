from pathlib import Path

import pytest
import sh
import yaml
from pydantic import SecretStr

from ec2_quickstart import application
from ec2_quickstart.application import (
    check_app_layout,
    find_project_root,
    deploy_services,
    initialise_database,
    install_answers,
    locate_app_dir,
    write_db_init_files,
)
from ec2_quickstart.config import DeploymentConfig, QuickstartSettings
from ec2_quickstart.errors import ExternalCommandFailure, MissingPrerequisiteDirectory


class FakeSh:
    """Stands in for the ``sh`` module inside ``application``."""

    ErrorReturnCode = sh.ErrorReturnCode

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def Command(self, path):
        def run(*args, **kwargs):
            self.calls.append((path, kwargs))
            if self.fail:
                raise sh.ErrorReturnCode_2(path, b"", b"boom")
        return run


def _cfg(ssl=False, domain="54.1.2.3"):
    return DeploymentConfig(domain=domain, ssl_enabled=ssl, db_password=SecretStr("s3cret"), public_ip="54.1.2.3")


def _app_dir(tmp_path: Path) -> Path:
    app_dir = tmp_path / "unichain-verify"
    (app_dir / "db_scripts").mkdir(parents=True)
    (app_dir / "db_scripts" / "init_db.sh").write_text("#!/bin/bash\n")
    (app_dir / "deploy" / "verify-service").mkdir(parents=True)
    (app_dir / "deploy" / "install-all.sh").write_text("#!/bin/bash\n")
    (app_dir / "deploy" / "verify-service" / "install.sh").write_text("#!/bin/bash\n")
    return app_dir


def test_locate_app_dir(tmp_path):
    _app_dir(tmp_path)
    found = locate_app_dir(QuickstartSettings(project_root=tmp_path))
    assert found == (tmp_path / "unichain-verify").resolve()


def test_locate_app_dir_missing(tmp_path):
    with pytest.raises(MissingPrerequisiteDirectory) as exc:
        locate_app_dir(QuickstartSettings(project_root=tmp_path))
    assert exc.value.path == (tmp_path / "unichain-verify").resolve()


def test_write_db_init_files_backs_up_existing_values(tmp_path):
    db_dir = tmp_path
    (db_dir / "init_values.yaml").write_text("original: true\n")

    write_db_init_files(_cfg(), db_dir)

    assert (db_dir / "init_values.yaml.backup").read_text() == "original: true\n"
    values = yaml.safe_load((db_dir / "init_values.yaml").read_text())
    assert values["dbUserPasswords"]["dbuserPassword"] == "s3cret"
    db = values["databases"]["inji_verify"]
    assert db["host"] == "postgres-postgresql.postgres"
    assert db["port"] == 5432
    assert db["su"] == {"user": "postgres", "secret": {"name": "postgres-postgresql", "key": "postgres-password"}}
    assert db["branch"] == "releasehk-0.15.x"

    cm = yaml.safe_load((db_dir / "postgres-config.yaml").read_text())
    assert cm["kind"] == "ConfigMap"
    assert cm["metadata"] == {"name": "postgres-config", "namespace": "injiverify"}


def test_write_db_init_files_without_existing_values(tmp_path):
    write_db_init_files(_cfg(), tmp_path)
    assert not (tmp_path / "init_values.yaml.backup").exists()
    assert (tmp_path / "init_values.yaml").exists()


def test_install_answers():
    assert install_answers(_cfg(ssl=False)) == "n\n54.1.2.3\n"
    assert install_answers(_cfg(ssl=True, domain="verify.example.com")) == "Y\n"


def test_initialise_database_confirms_prompt(monkeypatch, tmp_path):
    fake = FakeSh()
    monkeypatch.setattr(application, "sh", fake)
    app_dir = _app_dir(tmp_path)

    initialise_database(_cfg(), app_dir)

    path, kwargs = fake.calls[0]
    assert path.endswith("init_db.sh")
    assert kwargs["_in"] == "Y\n"
    assert kwargs["_cwd"] == str(app_dir / "db_scripts")
    assert (app_dir / "db_scripts" / "init_db.sh").stat().st_mode & 0o100


def test_initialise_database_failure_is_fatal(monkeypatch, tmp_path):
    monkeypatch.setattr(application, "sh", FakeSh(fail=True))
    with pytest.raises(ExternalCommandFailure) as exc:
        initialise_database(_cfg(), _app_dir(tmp_path))
    assert exc.value.step == "Database initialization"
    assert "exit code 2" in str(exc.value)


def test_initialise_database_missing_db_scripts(tmp_path):
    with pytest.raises(MissingPrerequisiteDirectory):
        initialise_database(_cfg(), tmp_path)


def test_deploy_services_passes_answers_and_env(monkeypatch, tmp_path):
    fake = FakeSh()
    monkeypatch.setattr(application, "sh", fake)
    app_dir = _app_dir(tmp_path)

    deploy_services(_cfg(), app_dir)

    path, kwargs = fake.calls[0]
    assert path.endswith("install-all.sh")
    assert kwargs["_in"] == "n\n54.1.2.3\n"
    assert kwargs["_env"]["ENABLE_SSL"] == "n"
    assert kwargs["_env"]["DOMAIN_NAME"] == "54.1.2.3"
    assert (app_dir / "deploy" / "verify-service" / "install.sh").stat().st_mode & 0o100


def test_deploy_services_missing_script(monkeypatch, tmp_path):
    monkeypatch.setattr(application, "sh", FakeSh())
    app_dir = _app_dir(tmp_path)
    (app_dir / "deploy" / "install-all.sh").unlink()
    with pytest.raises(ExternalCommandFailure) as exc:
        deploy_services(_cfg(), app_dir)
    assert exc.value.step == "Deployment"


def test_locate_app_dir_searches_parents_of_working_directory(monkeypatch, tmp_path):
    app_dir = _app_dir(tmp_path)
    monkeypatch.chdir(app_dir / "deploy" / "verify-service")

    assert locate_app_dir(QuickstartSettings()) == app_dir.resolve()


def test_find_project_root_falls_back_to_start(tmp_path):
    assert find_project_root("unichain-verify", start=tmp_path) == tmp_path.resolve()


def test_check_app_layout(tmp_path):
    app_dir = _app_dir(tmp_path)
    assert check_app_layout(QuickstartSettings(project_root=tmp_path)) == app_dir.resolve()


def test_check_app_layout_requires_db_scripts(tmp_path):
    (tmp_path / "unichain-verify" / "deploy").mkdir(parents=True)
    with pytest.raises(MissingPrerequisiteDirectory) as exc:
        check_app_layout(QuickstartSettings(project_root=tmp_path))
    assert exc.value.path.name == "db_scripts"
    assert exc.value.step == "Locate repository"
