"""
Configuration for the Sprint Planner

Loads config/config.yaml (if present) and lets environment variables override it.
"""

import logging
import os
from typing import Optional

import yaml

from .integrations import ProjectRef


class Config:
    """Load configuration from config.yaml and environment."""

    def __init__(self, config_path: str = "config/config.yaml"):
        self.config = {}

        if os.path.exists(config_path):
            with open(config_path) as f:
                self.config = yaml.safe_load(f) or {}

        # Override with environment variables
        self._load_env()

    def _load_env(self):
        """Load configuration from environment variables."""
        env_mapping = {
            "JIRA_URL": ("jira", "url"),
            "JIRA_EMAIL": ("jira", "email"),
            "JIRA_TOKEN": ("jira", "token"),
            "CONFLUENCE_URL": ("confluence", "url"),
            "SPRINT_DRY_RUN": ("execution", "dry_run"),
            "LOG_LEVEL": ("logging", "level"),
        }

        for env_var, (section, key) in env_mapping.items():
            value = os.getenv(env_var)
            if value:
                if section not in self.config:
                    self.config[section] = {}
                self.config[section][key] = value

        projects = os.getenv("JIRA_PROJECTS")
        if projects:
            self.config["projects"] = [{"key": k.strip()} for k in projects.split(",") if k.strip()]

    def get(self, section: str, key: str, default=None):
        """Get configuration value."""
        return (self.config.get(section) or {}).get(key, default)

    @property
    def jira_url(self) -> Optional[str]:
        return self.get("jira", "url")

    @property
    def jira_email(self) -> Optional[str]:
        return self.get("jira", "email")

    @property
    def jira_token(self) -> Optional[str]:
        return self.get("jira", "token")

    @property
    def jira_configured(self) -> bool:
        return all([self.jira_url, self.jira_email, self.jira_token])

    @property
    def confluence_url(self) -> Optional[str]:
        url = self.get("confluence", "url")
        if url:
            return url
        return f"{self.jira_url.rstrip('/')}/wiki" if self.jira_url else None

    @property
    def confluence_spaces(self) -> list[str]:
        return self.get("confluence", "spaces", [])

    @property
    def projects(self) -> list[ProjectRef]:
        return [
            ProjectRef(key=p["key"], board=p.get("board"))
            for p in self.config.get("projects", [])
            if p.get("key")
        ]

    @property
    def planning(self) -> dict:
        defaults = {
            "history_sprints": 3,
            "sprint_length_days": 14,
            "capacity_per_person": 10,
            "max_items_per_person": 6,
            "budget_margin": 1.1,
        }
        return {**defaults, **(self.config.get("planning") or {})}

    @property
    def execution(self) -> dict:
        defaults = {
            "assign": True,
            "transition": False,
            "create": False,
            "dry_run": False,
        }
        merged = {**defaults, **(self.config.get("execution") or {})}
        return {key: _as_bool(value) for key, value in merged.items()}

    @property
    def dry_run(self) -> bool:
        return self.execution["dry_run"]

    @property
    def log_level(self) -> str:
        return str(self.get("logging", "level", "INFO")).upper()


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stderr for the CLI and API entry points."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
