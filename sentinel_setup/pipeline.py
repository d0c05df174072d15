# ----------------------------------------------------------------
# Main Setup Class
# ----------------------------------------------------------------
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from sentinel_setup.config import Config
from sentinel_setup.console import (
    console,
    create_header,
    print_error,
    print_status_report,
    setup_logger,
)
from sentinel_setup.exceptions import StepFailed
from sentinel_setup.phases import (
    AppProvisioner,
    DockerInstaller,
    IdentityProvisioner,
    OperatorGuide,
    PreflightChecker,
    SecurityHardener,
)
from sentinel_setup.runner import CommandRunner

logger = logging.getLogger("sentinel_setup")


@dataclass
class Step:
    name: str
    description: str
    func: Callable[[], Any]


class SentinelSetup:
    """Runs the provisioning steps in order and stops at the first failure."""

    def __init__(
        self,
        config: Config,
        runner: Optional[CommandRunner] = None,
        verbose: bool = False,
    ) -> None:
        self.config = config
        self.runner = runner or CommandRunner(dry_run=config.DRY_RUN)
        self.verbose = verbose
        self.preflight = PreflightChecker()
        self.identity = IdentityProvisioner(config, self.runner)
        self.hardener = SecurityHardener(config, self.runner)
        self.docker = DockerInstaller(config, self.runner)
        self.app = AppProvisioner(config, self.runner)
        self.guide = OperatorGuide(config, self.runner)
        self.status: Dict[str, Dict[str, str]] = {
            step.name: {"status": "pending", "message": ""} for step in self.steps()
        }
        self.failure: Optional[StepFailed] = None

    def steps(self) -> List[Step]:
        return [
            Step("preflight", "Running pre-flight checks", self.phase_preflight),
            Step("user_setup", "Provisioning service account", self.identity.provision),
            Step("system_update", "Updating system packages", self.hardener.update_system),
            Step(
                "essential_packages",
                "Installing essential packages",
                self.hardener.install_packages,
            ),
            Step("firewall", "Configuring UFW firewall", self.hardener.configure_firewall),
            Step("fail2ban", "Configuring fail2ban", self.hardener.configure_fail2ban),
            Step(
                "auto_updates",
                "Enabling automatic security updates",
                self.hardener.configure_auto_updates,
            ),
            Step("docker_repo", "Adding Docker repository", self.docker.add_repository),
            Step("docker_install", "Installing Docker Engine", self.docker.install_docker),
            Step("docker_config", "Configuring Docker daemon", self.docker.configure_daemon),
            Step("app_files", "Creating ALTCHA project files", self.app.provision),
            Step("guidance", "Printing next steps", self.phase_guidance),
        ]

    def phase_preflight(self) -> None:
        # Nothing may touch the host before the privilege check passes
        self.preflight.check_root()
        setup_logger(self.config.LOG_FILE, verbose=self.verbose)
        logger.info("Starting ALTCHA Sentinel setup for Ubuntu 24.04...")
        logger.debug(f"Configuration: {self.config.to_dict()}")
        if self.runner.dry_run:
            logger.warning("Dry run: commands and file writes are only logged.")

    def phase_guidance(self) -> str:
        return self.guide.show(password_created=self.identity.created)

    def run_step(self, step: Step) -> Any:
        self.status[step.name] = {
            "status": "in_progress",
            "message": f"{step.description} in progress...",
        }
        start = time.time()
        # Guidance prints plain output; a spinner would interleave with it
        if step.name == "guidance":
            result = step.func()
        else:
            with console.status(f"[bold #88C0D0]{step.description}...[/]"):
                result = step.func()
        elapsed = time.time() - start
        console.print(f"[success]✓ {step.description} completed in {elapsed:.2f}s[/success]")
        self.status[step.name] = {
            "status": "success",
            "message": f"Completed in {elapsed:.2f}s",
        }
        return result

    def run(self) -> int:
        """Execute every step; return the process exit code."""
        console.print(create_header())
        steps = self.steps()
        for index, step in enumerate(steps):
            try:
                self.run_step(step)
            except Exception as e:
                self.failure = StepFailed(step.name, e)
                self.status[step.name] = {"status": "failed", "message": str(e)}
                for remaining in steps[index + 1 :]:
                    self.status[remaining.name] = {
                        "status": "skipped",
                        "message": f"Not run: {step.name} failed",
                    }
                print_error(str(self.failure))
                if step.name != "preflight":
                    logger.error(str(self.failure))
                break

        print_status_report(self.status)
        if self.failure:
            return self.failure.exit_code
        return 0
