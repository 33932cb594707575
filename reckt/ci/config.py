"""
Configuration file loader for ``.reckt.yml``.

Provides defaults so the tool works out of the box without a config file,
while allowing per-repo customisation of the analysis and the report.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from ..errors import RecktError

CONFIG_NAMES = (".reckt.yml", ".reckt.yaml")
REPORT_FORMATS = ("text", "json", "sarif")
VISITED_SCOPES = ("global", "path")


class ConfigError(RecktError):
    """The config file is unreadable or has invalid values."""


@dataclass
class AnalysisConfig:
    tests: bool = False
    visited_scope: str = "global"
    suppression_builtin: str = "recover"
    # Raises in functions no entry point reaches
    report_unresolved: bool = True


@dataclass
class ReportConfig:
    format: str = "text"
    output: Optional[str] = None


@dataclass
class RecktConfig:
    """Top-level configuration for reckt."""
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    report: ReportConfig = field(default_factory=ReportConfig)

    @classmethod
    def find(cls, start: Path) -> Optional[Path]:
        """Return the config file in ``start`` (a directory), if any."""
        for name in CONFIG_NAMES:
            candidate = start / name
            if candidate.exists():
                return candidate
        return None

    @classmethod
    def load(cls, repo_root: Path) -> "RecktConfig":
        """Load config from .reckt.yml in ``repo_root``, falling back to defaults."""
        config_path = cls.find(repo_root)
        if config_path is None:
            return cls()
        return cls.load_file(config_path)

    @classmethod
    def load_file(cls, config_path: Path) -> "RecktConfig":
        try:
            with open(config_path) as f:
                raw = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"cannot read {config_path}: {e.strerror or e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"cannot parse {config_path}: {e}") from e

        if not isinstance(raw, dict):
            raise ConfigError(f"{config_path}: expected a mapping at top level")
        return cls._from_dict(raw)

    @classmethod
    def _from_dict(cls, raw: dict[str, Any]) -> "RecktConfig":
        analysis_raw = _section(raw, "analysis")
        report_raw = _section(raw, "report")

        analysis = AnalysisConfig(
            tests=bool(analysis_raw.get("tests", False)),
            visited_scope=str(analysis_raw.get("visited-scope", analysis_raw.get("visited_scope", "global"))),
            suppression_builtin=str(analysis_raw.get(
                "suppression-builtin", analysis_raw.get("suppression_builtin", "recover"),
            )),
            report_unresolved=bool(analysis_raw.get(
                "report-unresolved", analysis_raw.get("report_unresolved", True),
            )),
        )
        report = ReportConfig(
            format=str(report_raw.get("format", "text")),
            output=report_raw.get("output"),
        )

        if analysis.visited_scope not in VISITED_SCOPES:
            raise ConfigError(f"analysis.visited-scope must be one of {', '.join(VISITED_SCOPES)}")
        if report.format not in REPORT_FORMATS:
            raise ConfigError(f"report.format must be one of {', '.join(REPORT_FORMATS)}")

        return cls(analysis=analysis, report=report)

    def to_yaml(self) -> str:
        """Serialise to YAML string."""
        return yaml.safe_dump(
            {
                "analysis": {
                    "tests": self.analysis.tests,
                    "visited-scope": self.analysis.visited_scope,
                    "suppression-builtin": self.analysis.suppression_builtin,
                    "report-unresolved": self.analysis.report_unresolved,
                },
                "report": {
                    "format": self.report.format,
                    "output": self.report.output,
                },
            },
            sort_keys=False,
        )


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{name} must be a mapping")
    return value
