import datetime
import json
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from rich.markup import escape

from sentinel_setup.config import (
    Config,
    DEFAULT_CODENAME,
    DOCKER_GPG_URL,
    validate_password,
    validate_username,
)
from sentinel_setup.console import (
    NordColors,
    console,
    display_panel,
    print_step,
    print_success,
    print_warning,
)
from sentinel_setup.exceptions import PrivilegeError, SetupError
from sentinel_setup.runner import CommandRunner, make_temp_file
from sentinel_setup import templates

logger = logging.getLogger("sentinel_setup")

APT_ENV: Dict[str, str] = {"DEBIAN_FRONTEND": "noninteractive"}


class PreflightChecker:
    def check_root(self) -> None:
        """Verify the script is running with root privileges."""
        if os.geteuid() != 0:
            raise PrivilegeError("This script must be run as root")
        logger.info("Root privileges confirmed.")


class IdentityProvisioner:
    """Creates the dedicated service account and grants its admin group."""

    def __init__(self, config: Config, runner: CommandRunner) -> None:
        self.config = config
        self.runner = runner
        self.created = False

    def user_exists(self) -> bool:
        return self.runner.succeeds(["id", self.config.USERNAME])

    def create_user(self) -> bool:
        username = self.config.USERNAME
        if self.user_exists():
            logger.warning(f"User {username} already exists")
            return False

        try:
            validate_username(username)
            validate_password(self.config.TEMP_PASSWORD)
        except ValueError as e:
            raise SetupError(str(e)) from e

        logger.info(f"Creating user: {username}")
        self.runner.run(["useradd", "-m", "-s", "/bin/bash", username])

        # Temporary password, expired so the first login forces a change
        self.runner.run(
            ["chpasswd"], input=f"{username}:{self.config.TEMP_PASSWORD}\n"
        )
        self.runner.run(["chage", "-d", "0", username])
        print_warning(
            f"User {username} created with temporary password: {self.config.TEMP_PASSWORD}"
        )
        print_warning("This password must be changed on first login")
        self.created = True
        return True

    def grant_admin(self) -> None:
        self.runner.run(
            ["usermod", "-aG", self.config.ADMIN_GROUP, self.config.USERNAME]
        )
        logger.info(f"Added {self.config.USERNAME} to group {self.config.ADMIN_GROUP}.")

    def provision(self) -> bool:
        created = self.create_user()
        self.grant_admin()
        return created


class SecurityHardener:
    def __init__(self, config: Config, runner: CommandRunner) -> None:
        self.config = config
        self.runner = runner

    def update_system(self) -> None:
        logger.info("Updating system packages...")
        self.runner.run(["apt-get", "update"], env=APT_ENV)
        self.runner.run(["apt-get", "upgrade", "-y"], env=APT_ENV)

    def install_packages(self, packages: Optional[List[str]] = None) -> None:
        packages = packages or self.config.ESSENTIAL_PACKAGES
        logger.info(f"Installing {len(packages)} essential packages...")
        self.runner.run(["apt-get", "install", "-y"] + packages, env=APT_ENV)

    def firewall_commands(self) -> List[List[str]]:
        return [
            ["ufw", "--force", "reset"],
            ["ufw", "default", "deny", "incoming"],
            ["ufw", "default", "allow", "outgoing"],
            ["ufw", "allow", "ssh"],
            [
                "ufw",
                "allow",
                f"{self.config.SERVICE_PORT}/tcp",
                "comment",
                self.config.FIREWALL_COMMENT,
            ],
            ["ufw", "--force", "enable"],
        ]

    def configure_firewall(self) -> None:
        """Rebuild the UFW ruleset: deny inbound except SSH and the service port."""
        logger.info("Configuring UFW firewall...")
        for cmd in self.firewall_commands():
            self.runner.run(cmd)
        logger.info(f"UFW allows SSH and {self.config.SERVICE_PORT}/tcp only.")

    def configure_fail2ban(self) -> None:
        logger.info("Configuring fail2ban...")
        self.runner.run(["systemctl", "enable", "fail2ban"])
        self.runner.run(["systemctl", "start", "fail2ban"])

    def configure_auto_updates(self) -> None:
        logger.info("Enabling automatic security updates...")
        config_file = self.config.host_path(self.config.UNATTENDED_CONFIG)
        if self.runner.append_line(config_file, templates.UNATTENDED_REBOOT_LINE):
            logger.info(f"Disabled automatic reboot in {config_file}.")
        self.runner.run(["systemctl", "enable", "unattended-upgrades"])


class DockerInstaller:
    def __init__(self, config: Config, runner: CommandRunner) -> None:
        self.config = config
        self.runner = runner

    def architecture(self) -> str:
        return self.runner.output(["dpkg", "--print-architecture"])

    def codename(self) -> str:
        """Read the distribution codename from os-release."""
        os_release = self.config.host_path(self.config.OS_RELEASE)
        values: Dict[str, str] = {}
        if os_release.is_file():
            for line in os_release.read_text().splitlines():
                key, sep, value = line.partition("=")
                if sep:
                    values[key.strip()] = value.strip().strip('"')
        codename = values.get("VERSION_CODENAME") or values.get("UBUNTU_CODENAME")
        if not codename:
            logger.warning(
                f"No codename found in {os_release}; assuming {DEFAULT_CODENAME}."
            )
            codename = DEFAULT_CODENAME
        return codename

    def add_gpg_key(self) -> None:
        logger.info("Adding Docker's official GPG key...")
        keyring = str(self.config.host_path(self.config.DOCKER_KEYRING))
        self.runner.run(
            [
                "install",
                "-m",
                "0755",
                "-d",
                str(self.config.host_path(self.config.KEYRING_DIR)),
            ]
        )
        key_file = make_temp_file(".asc")
        try:
            self.runner.run(["curl", "-fsSL", DOCKER_GPG_URL, "-o", str(key_file)])
            self.runner.run(
                ["gpg", "--batch", "--yes", "--dearmor", "-o", keyring, str(key_file)]
            )
        finally:
            key_file.unlink(missing_ok=True)
        self.runner.run(["chmod", "a+r", keyring])

    def add_repository(self) -> Tuple[str, str]:
        self.add_gpg_key()
        arch = self.architecture()
        codename = self.codename()
        logger.info(f"Adding Docker repository for {codename} ({arch})...")
        self.runner.write_file(
            self.config.host_path(self.config.DOCKER_SOURCES),
            templates.render_docker_source(self.config, arch, codename),
        )
        return arch, codename

    def install_docker(self) -> None:
        logger.info("Updating package index with Docker repository...")
        self.runner.run(["apt-get", "update"], env=APT_ENV)
        logger.info("Installing Docker Engine and Docker Compose...")
        self.runner.run(
            ["apt-get", "install", "-y"] + self.config.DOCKER_PACKAGES, env=APT_ENV
        )
        self.runner.run(["systemctl", "start", "docker"])
        self.runner.run(["systemctl", "enable", "docker"])

        # Membership in the docker group is equivalent to root on this host
        self.runner.run(
            ["usermod", "-aG", self.config.DOCKER_GROUP, self.config.USERNAME]
        )
        logger.info(f"Added {self.config.USERNAME} to group {self.config.DOCKER_GROUP}.")

    def configure_daemon(self) -> bool:
        """Write daemon.json when it differs from the desired settings, then restart Docker."""
        logger.info("Configuring Docker daemon for security...")
        daemon = self.config.host_path(self.config.DAEMON_JSON)
        update_needed = True
        if daemon.is_file():
            try:
                if json.loads(daemon.read_text()) == self.config.DAEMON_CONFIG:
                    update_needed = False
            except json.JSONDecodeError:
                logger.warning(f"{daemon} is not valid JSON; replacing it.")

        if update_needed:
            if daemon.is_file():
                timestamp = datetime.datetime.now().strftime("%Y%m%d%H%M%S")
                backup = self.runner.backup_file(daemon, timestamp)
                logger.warning(f"Previous {daemon} kept at {backup}.")
            self.runner.write_file(daemon, templates.render_daemon_json(self.config))
            logger.info(f"Wrote {daemon}.")
        else:
            logger.info(f"{daemon} already up to date.")

        self.runner.run(["systemctl", "restart", "docker"])
        return update_needed


class AppProvisioner:
    """Materializes the Sentinel project directory for the service account."""

    def __init__(self, config: Config, runner: CommandRunner) -> None:
        self.config = config
        self.runner = runner

    @property
    def project_dir(self) -> Path:
        return self.config.host_path(self.config.project_dir)

    def write_descriptor(self) -> bool:
        path = self.project_dir / "docker-compose.yml"
        content = templates.render_compose(self.config)
        if path.is_file():
            if path.read_text() == content:
                logger.info(f"{path} unchanged.")
                return False
            timestamp = datetime.datetime.now().strftime("%Y%m%d%H%M%S")
            backup = self.runner.backup_file(path, timestamp)
            logger.warning(f"{path} had local edits; previous copy kept at {backup}.")
        self.runner.write_file(path, content, mode=0o644)
        return True

    def write_env(self) -> bool:
        path = self.project_dir / ".env"
        if path.exists():
            logger.warning(f"{path} already exists; keeping current settings.")
            return False
        self.runner.write_file(path, templates.render_env(), mode=0o600)
        return True

    def write_scripts(self) -> List[Path]:
        written = []
        for name, content in templates.render_scripts().items():
            path = self.project_dir / name
            self.runner.write_file(path, content, mode=0o755)
            written.append(path)
        return written

    def provision(self) -> Path:
        project_dir = self.project_dir
        logger.info(f"Creating ALTCHA project directory at {project_dir}...")
        self.runner.ensure_directory(project_dir)

        self.write_descriptor()
        self.write_env()
        self.write_scripts()
        self.runner.write_file(
            project_dir / "README.md", templates.render_readme(self.config), mode=0o644
        )

        owner = f"{self.config.USERNAME}:{self.config.USERNAME}"
        self.runner.run(["chown", "-R", owner, str(project_dir)])
        return project_dir


class OperatorGuide:
    def __init__(self, config: Config, runner: CommandRunner) -> None:
        self.config = config
        self.runner = runner

    def primary_ip(self) -> Optional[str]:
        result = self.runner.run(
            ["hostname", "-I"], check=False, capture_output=True, query=True
        )
        addresses = (result.stdout or "").split()
        if result.returncode != 0 or not addresses:
            return None
        return addresses[0]

    def service_url(self) -> str:
        host = self.primary_ip() or "<server-ip>"
        return f"http://{host}:{self.config.SERVICE_PORT}"

    def show(self, password_created: bool) -> str:
        username = self.config.USERNAME
        url = self.service_url()

        print_success("Installation complete!")
        console.print()
        print_warning("IMPORTANT SECURITY STEPS:")
        console.print(f"1. Switch to the {escape(username)} user: su - {escape(username)}")
        if password_created:
            console.print(
                f"2. When prompted for 'Current password', enter: {escape(self.config.TEMP_PASSWORD)}"
            )
        else:
            console.print("2. Log in with the account's existing password")
        console.print("3. Set a new secure password when prompted")
        console.print()

        print_step(f"Quick start commands (as {username} user):")
        console.print("cd ~/altcha")
        console.print("./start.sh")
        console.print()

        display_panel(
            f"Access ALTCHA at: {url}", style=NordColors.FROST_2, title="Sentinel"
        )

        print_warning("Remember to:")
        console.print("- Keep your system updated: sudo apt update && sudo apt upgrade")
        console.print("- Monitor logs regularly: ./logs.sh")
        console.print("- Backup your configuration and data")
        console.print()
        print_success(f"Setup complete! Switch to user '{username}' to begin.")
        return url
