"""
Renderers for every file the setup writes to the host.

All renderers are pure: they take the ``Config`` and return text, so the same
configuration always yields byte-identical artifacts.
"""

import json
from typing import Any, Dict

import yaml

from sentinel_setup.config import Config, DOCKER_REPO_URL, SENTINEL_DOCS_URL

# Port Sentinel listens on inside the container
CONTAINER_PORT: int = 8080

UNATTENDED_REBOOT_LINE: str = 'Unattended-Upgrade::Automatic-Reboot "false";'


def compose_descriptor(config: Config) -> Dict[str, Any]:
    probe = (
        "bash -c 'echo -e \"GET / HTTP/1.0\\r\\n\\r\\n\" "
        f"> /dev/tcp/127.0.0.1/{CONTAINER_PORT}'"
    )
    return {
        "services": {
            config.SERVICE_NAME: {
                "image": config.image_ref,
                "container_name": config.SERVICE_NAME,
                "restart": "unless-stopped",
                "env_file": ".env",
                "deploy": {"resources": {"limits": {"memory": config.MEMORY_LIMIT}}},
                "ports": [f"{config.SERVICE_PORT}:{CONTAINER_PORT}"],
                "volumes": [f"{config.VOLUME_NAME}:/data"],
                "healthcheck": {
                    "test": ["CMD-SHELL", probe],
                    "interval": "5s",
                    "timeout": "5s",
                    "retries": 3,
                    "start_period": "5s",
                },
                "security_opt": ["no-new-privileges:true"],
                "tmpfs": ["/tmp"],
            }
        },
        "volumes": {config.VOLUME_NAME: {"driver": "local"}},
    }


def render_compose(config: Config) -> str:
    return yaml.safe_dump(
        compose_descriptor(config),
        sort_keys=False,
        default_flow_style=False,
        width=1000,
    )


def render_env() -> str:
    return (
        "# ALTCHA Sentinel ENV Configuration\n"
        f"# Documentation: {SENTINEL_DOCS_URL}\n"
    )


def render_daemon_json(config: Config) -> str:
    return json.dumps(config.DAEMON_CONFIG, indent=2) + "\n"


def render_docker_source(config: Config, arch: str, codename: str) -> str:
    return (
        f"deb [arch={arch} signed-by={config.DOCKER_KEYRING}] "
        f"{DOCKER_REPO_URL} {codename} stable\n"
    )


# ----------------------------------------------------------------
# Management Scripts
# ----------------------------------------------------------------
SCRIPT_HEADER = '#!/bin/bash\ncd "$(dirname "$0")"\n'

MANAGEMENT_SCRIPTS: Dict[str, str] = {
    "start.sh": (
        'echo "Starting ALTCHA Sentinel..."\n'
        "docker compose up -d\n"
        'echo "ALTCHA started! Check status with: ./status.sh"\n'
    ),
    "stop.sh": (
        'echo "Stopping ALTCHA Sentinel..."\n'
        "docker compose down\n"
        'echo "ALTCHA stopped."\n'
    ),
    "status.sh": (
        'echo "=== ALTCHA Sentinel Status ==="\n'
        "docker compose ps\n"
        'echo ""\n'
        'echo "=== Recent Logs ==="\n'
        "docker compose logs --tail=20\n"
    ),
    "update.sh": (
        'echo "Updating ALTCHA Sentinel..."\n'
        "docker compose pull\n"
        "docker compose up -d\n"
        'echo "Update complete!"\n'
    ),
    "logs.sh": "docker compose logs -f\n",
}


def render_scripts() -> Dict[str, str]:
    return {name: SCRIPT_HEADER + body for name, body in MANAGEMENT_SCRIPTS.items()}


def render_readme(config: Config) -> str:
    return f"""# ALTCHA Sentinel Setup

## Configuration

Edit `.env` file to customize settings (optional):
```bash
nano .env
```

All settings have sensible defaults. The HMAC key is generated automatically by the server.
See {SENTINEL_DOCS_URL} for the available variables.

## Management Commands

- `./start.sh` - Start ALTCHA Sentinel
- `./stop.sh` - Stop ALTCHA Sentinel
- `./status.sh` - Check status and recent logs
- `./update.sh` - Pull the image pinned in docker-compose.yml and restart
- `./logs.sh` - View live logs

## Version

The image is pinned to `{config.image_ref}`. Edit the `image:` line in
`docker-compose.yml` and run `./update.sh` to change it. Re-running the
setup regenerates `docker-compose.yml`; a locally edited copy is kept as
`docker-compose.yml.bak.<timestamp>`. `.env` is never overwritten.

## First Run

1. Run: `./start.sh`
2. Access at: http://your-server-ip:{config.SERVICE_PORT}

## Firewall

UFW is configured to allow:
- SSH (port 22)
- ALTCHA (port {config.SERVICE_PORT})
"""
