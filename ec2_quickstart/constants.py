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

"""Constants for installers, cluster resources, and the application layout."""

from __future__ import annotations

from pathlib import Path

# ============================================================================
# Application repository
# ============================================================================

APP_REPO_URL = "https://github.com/HIREKARMA1/unichain-verify.git"
APP_REPO_BRANCH = "releasehk-0.15.x"
DEFAULT_APP_DIR_NAME = "unichain-verify"

REL_DB_SCRIPTS = "db_scripts"
REL_DEPLOY = "deploy"
DB_INIT_SCRIPT = "init_db.sh"
DB_COPY_CM_SCRIPT = "copy_cm_func.sh"
DB_INIT_VALUES = "init_values.yaml"
DB_POSTGRES_CONFIG = "postgres-config.yaml"
DEPLOY_INSTALL_SCRIPT = "install-all.sh"
DEPLOY_RESTART_SCRIPT = "restart-all.sh"
DEPLOY_DELETE_SCRIPT = "delete-all.sh"
BACKUP_SUFFIX = ".backup"

# ============================================================================
# Host installers
# ============================================================================

BASE_PACKAGES = ("curl", "wget", "git", "vim", "unzip", "jq", "net-tools")
JAVA_PACKAGE = "openjdk-21-jdk"
MAVEN_PACKAGE = "maven"

DOCKER_INSTALL_URL = "https://get.docker.com"
K3S_INSTALL_URL = "https://get.k3s.io"
HELM_INSTALL_URL = "https://raw.githubusercontent.com/helm/helm/main/scripts/get-helm-3"
INSTALLER_DOWNLOAD_TIMEOUT = 60

K3S_KUBECONFIG = Path("/etc/rancher/k3s/k3s.yaml")
K3S_BINARY = Path("/usr/local/bin/k3s")
KUBECTL_LINK = Path("/usr/local/bin/kubectl")
K3S_STARTUP_SLEEP_SECONDS = 30

# ============================================================================
# EC2 instance metadata
# ============================================================================

METADATA_BASE_URL = "http://169.254.169.254/latest"
METADATA_TOKEN_PATH = "api/token"
METADATA_PUBLIC_IP_PATH = "meta-data/public-ipv4"
METADATA_TOKEN_TTL_HEADER = "X-aws-ec2-metadata-token-ttl-seconds"
METADATA_TOKEN_HEADER = "X-aws-ec2-metadata-token"
METADATA_TOKEN_TTL_SECONDS = 21600
DEFAULT_METADATA_TIMEOUT = 2.0

# ============================================================================
# Cluster resources
# ============================================================================

NS_POSTGRES = "postgres"
NS_CONFIG_SERVER = "config-server"
NS_APP = "injiverify"

HELM_REPO_BITNAMI = "bitnami"
HELM_REPO_BITNAMI_URL = "https://charts.bitnami.com/bitnami"
HELM_CHART_POSTGRES = "bitnami/postgresql"
HELM_RELEASE_POSTGRES = "postgres"
POSTGRES_INSTALL_TIMEOUT = "10m"

POSTGRES_USER = "postgres"
POSTGRES_DATABASE = "inji_verify"
POSTGRES_HOST = "postgres-postgresql.postgres"
POSTGRES_PORT = 5432
POSTGRES_SECRET_NAME = "postgres-postgresql"
POSTGRES_SECRET_KEY = "postgres-password"
POSTGRES_PERSISTENCE_SIZE = "20Gi"
POSTGRES_REQUEST_MEMORY = "256Mi"
POSTGRES_REQUEST_CPU = "250m"
REDIS_HOST = "redis-master.redis"

STACK_CONFIGMAP = "inji-stack-config"
POSTGRES_CONFIGMAP = "postgres-config"

LABEL_POSTGRES = "app.kubernetes.io/name=postgresql"
LABEL_VERIFY_SERVICE = "app=inji-verify-service"
LABEL_VERIFY_UI = "app=inji-verify-ui"

SVC_VERIFY_SERVICE = "inji-verify-service"
SVC_VERIFY_UI = "inji-verify-ui"
DEPLOY_VERIFY_SERVICE = "deploy/inji-verify-service"

NODE_PORT_JSONPATH = "jsonpath={.spec.ports[0].nodePort}"
NODE_PORT_MISSING = "N/A"
VERIFY_API_PATH = "/v1/verify"
VERIFY_HEALTH_URL = "http://localhost:8080/v1/verify/health"

UI_PORT_FORWARD = "3000:8000"
SERVICE_PORT_FORWARD = "8080:8080"

# ============================================================================
# Readiness defaults
# ============================================================================

DEFAULT_NODE_READY_TIMEOUT = 300
DEFAULT_NODE_FALLBACK_SLEEP = 30
DEFAULT_POSTGRES_READY_TIMEOUT = 300
DEFAULT_POSTGRES_FALLBACK_SLEEP = 30
DEFAULT_APP_READY_TIMEOUT = 600
DEFAULT_APP_FALLBACK_SLEEP = 60
DEFAULT_READINESS_ATTEMPTS = 2
APP_NAMESPACE_SETTLE_SECONDS = 10
VERIFICATION_SETTLE_SECONDS = 15

KUBECTL_DEFAULT_TIMEOUT = 30

# ============================================================================
# Prompts and logging
# ============================================================================

DEFAULT_DB_PASSWORD = "postgres"
PASSWORD_MASK = "********"
YES_PATTERN = r"^[Yy]$"
LOG_FILE_PATTERN = "deployment-%Y%m%d-%H%M%S.log"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
