"""
Rendering tests for the files written into the Sentinel project directory.
"""

from __future__ import annotations

import json

import yaml

from sentinel_setup import templates
from sentinel_setup.config import Config, SENTINEL_VERSION


class TestComposeDescriptor:
    def test_parses_and_pins_image_version(self, config: Config):
        data = yaml.safe_load(templates.render_compose(config))

        service = data["services"]["altcha_sentinel"]
        assert service["image"] == f"ghcr.io/altcha-org/sentinel:{SENTINEL_VERSION}"
        assert SENTINEL_VERSION == "1.14.0"

    def test_service_fields(self, config: Config):
        service = yaml.safe_load(templates.render_compose(config))["services"][
            "altcha_sentinel"
        ]

        assert service["container_name"] == "altcha_sentinel"
        assert service["restart"] == "unless-stopped"
        assert service["env_file"] == ".env"
        assert service["deploy"]["resources"]["limits"]["memory"] == "2G"
        assert service["ports"] == ["8080:8080"]
        assert service["volumes"] == ["altcha_sentinel_data:/data"]
        assert service["security_opt"] == ["no-new-privileges:true"]
        assert service["tmpfs"] == ["/tmp"]

    def test_healthcheck_is_tcp_probe(self, config: Config):
        healthcheck = yaml.safe_load(templates.render_compose(config))["services"][
            "altcha_sentinel"
        ]["healthcheck"]

        assert healthcheck["test"][0] == "CMD-SHELL"
        assert "/dev/tcp/127.0.0.1/8080" in healthcheck["test"][1]
        assert healthcheck["interval"] == "5s"
        assert healthcheck["timeout"] == "5s"
        assert healthcheck["retries"] == 3
        assert healthcheck["start_period"] == "5s"

    def test_named_volume_declared(self, config: Config):
        data = yaml.safe_load(templates.render_compose(config))
        assert data["volumes"] == {"altcha_sentinel_data": {"driver": "local"}}

    def test_custom_port_and_version(self):
        config = Config(SERVICE_PORT=9090, SENTINEL_VERSION="2.0.1")
        service = yaml.safe_load(templates.render_compose(config))["services"][
            "altcha_sentinel"
        ]

        assert service["ports"] == ["9090:8080"]
        assert service["image"].endswith(":2.0.1")

    def test_rendering_is_deterministic(self, config: Config):
        assert templates.render_compose(config) == templates.render_compose(config)


def test_env_template_has_documentation_header():
    env = templates.render_env()
    assert env.startswith("# ALTCHA Sentinel ENV Configuration\n")
    assert "https://altcha.org/docs/v2/sentinel/advanced/env/" in env
    assert all(line.startswith("#") for line in env.splitlines())


def test_daemon_json(config: Config):
    assert json.loads(templates.render_daemon_json(config)) == {
        "log-driver": "json-file",
        "log-opts": {"max-size": "10m", "max-file": "3"},
        "live-restore": True,
        "userland-proxy": False,
    }


def test_docker_source_entry(config: Config):
    assert templates.render_docker_source(config, "arm64", "noble") == (
        "deb [arch=arm64 signed-by=/etc/apt/keyrings/docker.gpg] "
        "https://download.docker.com/linux/ubuntu noble stable\n"
    )


def test_scripts_change_to_their_directory_first():
    scripts = templates.render_scripts()
    assert sorted(scripts) == ["logs.sh", "start.sh", "status.sh", "stop.sh", "update.sh"]
    for content in scripts.values():
        lines = content.splitlines()
        assert lines[0] == "#!/bin/bash"
        assert lines[1] == 'cd "$(dirname "$0")"'


def test_readme_mentions_pinned_image(config: Config):
    readme = templates.render_readme(config)
    assert config.image_ref in readme
    assert "./start.sh" in readme
