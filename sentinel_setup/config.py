# ----------------------------------------------------------------
# Global Configuration
# ----------------------------------------------------------------
import re
import secrets
import string
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

APP_NAME: str = "Sentinel Setup"
VERSION: str = "1.0.0"

# Sentinel Docker image tag
SENTINEL_VERSION: str = "1.14.0"
SENTINEL_IMAGE: str = "ghcr.io/altcha-org/sentinel"
SENTINEL_DOCS_URL: str = "https://altcha.org/docs/v2/sentinel/advanced/env/"

DOCKER_GPG_URL: str = "https://download.docker.com/linux/ubuntu/gpg"
DOCKER_REPO_URL: str = "https://download.docker.com/linux/ubuntu"
DEFAULT_CODENAME: str = "noble"

TEMP_PREFIX: str = "sentinel_setup_"

# Same shape adduser accepts by default
USERNAME_PATTERN = re.compile(r"[a-z_][a-z0-9_-]{0,31}")


def generate_password(length: int = 16) -> str:
    """Generate a random temporary password for the provisioned account."""
    characters = string.ascii_letters + string.digits
    return "".join(secrets.choice(characters) for _ in range(length))


def validate_username(username: str) -> str:
    """Reject account names that useradd, chpasswd or a home path cannot take as-is."""
    if not USERNAME_PATTERN.fullmatch(username):
        raise ValueError(
            f"invalid account name {username!r}: use lowercase letters, digits, "
            "'_' or '-', starting with a letter or '_' (max 32 characters)"
        )
    return username


def validate_password(password: str) -> str:
    """Reject passwords that would break the one-line user:password record for chpasswd."""
    if not password:
        raise ValueError("temporary password must not be empty")
    if any(ord(c) < 32 or ord(c) == 127 for c in password):
        raise ValueError("temporary password must not contain control characters or newlines")
    return password


@dataclass
class Config:
    """Configuration for the Sentinel host setup process."""

    USERNAME: str = "altcha"
    TEMP_PASSWORD: Optional[str] = None
    SENTINEL_VERSION: str = SENTINEL_VERSION
    SENTINEL_IMAGE: str = SENTINEL_IMAGE
    SERVICE_PORT: int = 8080
    SERVICE_NAME: str = "altcha_sentinel"
    VOLUME_NAME: str = "altcha_sentinel_data"
    MEMORY_LIMIT: str = "2G"
    FIREWALL_COMMENT: str = "ALTCHA Sentinel"
    LOG_FILE: str = "/var/log/sentinel_setup.log"
    ROOT: Path = field(default_factory=lambda: Path("/"))
    DRY_RUN: bool = False

    ESSENTIAL_PACKAGES: List[str] = field(
        default_factory=lambda: [
            "ca-certificates",
            "curl",
            "gnupg",
            "lsb-release",
            "apt-transport-https",
            "software-properties-common",
            "ufw",
            "fail2ban",
            "unattended-upgrades",
            "htop",
            "nano",
            "vim",
            "wget",
            "git",
        ]
    )

    DOCKER_PACKAGES: List[str] = field(
        default_factory=lambda: [
            "docker-ce",
            "docker-ce-cli",
            "containerd.io",
            "docker-buildx-plugin",
            "docker-compose-plugin",
        ]
    )

    # Docker daemon configuration for security
    DAEMON_CONFIG: Dict[str, Any] = field(
        default_factory=lambda: {
            "log-driver": "json-file",
            "log-opts": {"max-size": "10m", "max-file": "3"},
            "live-restore": True,
            "userland-proxy": False,
        }
    )

    ADMIN_GROUP: str = "sudo"
    DOCKER_GROUP: str = "docker"
    KEYRING_DIR: str = "/etc/apt/keyrings"
    DOCKER_KEYRING: str = "/etc/apt/keyrings/docker.gpg"
    DOCKER_SOURCES: str = "/etc/apt/sources.list.d/docker.list"
    DAEMON_JSON: str = "/etc/docker/daemon.json"
    UNATTENDED_CONFIG: str = "/etc/apt/apt.conf.d/50unattended-upgrades"
    OS_RELEASE: str = "/etc/os-release"

    def __post_init__(self) -> None:
        self.ROOT = Path(self.ROOT)
        if not self.TEMP_PASSWORD:
            self.TEMP_PASSWORD = generate_password()

    @property
    def home_dir(self) -> str:
        return f"/home/{self.USERNAME}"

    @property
    def project_dir(self) -> str:
        return f"{self.home_dir}/altcha"

    @property
    def image_ref(self) -> str:
        return f"{self.SENTINEL_IMAGE}:{self.SENTINEL_VERSION}"

    def host_path(self, path: str) -> Path:
        """Resolve an absolute host path under the configured filesystem root."""
        return self.ROOT / path.lstrip("/")

    def to_dict(self) -> Dict[str, Any]:
        """Convert the config to a dictionary, hiding the temporary password."""
        data = asdict(self)
        data["TEMP_PASSWORD"] = "********"
        data["ROOT"] = str(self.ROOT)
        return data
