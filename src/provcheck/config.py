"""Load and validate provcheck run configuration and policy files."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from provcheck.engine.types import DiffSignature, PolicyEntry, normalize_artifact_id
from provcheck.errors import (
    CONFIG_REASON_MISSING,
    CONFIG_REASON_PARSE_ERROR,
    CONFIG_REASON_SCHEMA_INVALID,
    ConfigError,
)
from provcheck.reference.checkout import ReferenceOverride
from provcheck.schemas.validator import validate_data

DEFAULT_CONFIG_FILENAME = "provcheck.yaml"
DEFAULT_API_KEY_ENV = "ETHERSCAN_API_KEY"
DEFAULT_TIMEOUT_S = 30.0
DEFAULT_DELAY_S = 0.25
DEFAULT_REPORT_DIR = Path("out/provcheck")

# Keep this literal deterministic and sorted in write path.
CONFIG_TEMPLATE: dict[str, Any] = {
    "reference": {
        "repo_url": "https://github.com/revert-finance/lend.git",
        "revision": "da1b1a2458666db01ee2fb98be190a70de16468b",
        "setup_commands": [["forge", "install"]],
        "overrides": [
            {
                "path": "lib/v3-periphery/contracts/libraries/PoolAddress.sol",
                "pattern": r"bytes32\s+internal\s+constant\s+POOL_INIT_CODE_HASH\s*=\s*0x[0-9a-fA-F]+;",
                "replacement": (
                    "bytes32 internal constant POOL_INIT_CODE_HASH = "
                    "0xe34f199b19b2b4f47f68442619d555527d244f78a3297ea89325f843f87b8b54;"
                ),
            }
        ],
    },
    "explorer": {
        "api_url": "https://api.arbiscan.io/api",
        "api_key_env": "ARBISCAN_API_KEY",
        "timeout_seconds": DEFAULT_TIMEOUT_S,
        "delay_seconds": DEFAULT_DELAY_S,
    },
    "artifacts": [
        "0x4f8629c1056d7c7fc7e132ad2234761488baa9be",
        "0xd0186335f7b7c390b6d6c0c021212243ed297dda",
        "0x9d97c76102e72883cd25fa60e0f4143516d5b6db",
        "0xcfd55ac7647454ea0f7c4c9ec231e0a282b30980",
        "0x74e6afef5705beb126c6d3bf46f8fad8f3e07825",
        "0x9F703BFccd04389725FbaD7Bc50F2E345583d506",
        "0xe5047b321071b939d48ae8aa34770c9838bb25e8",
        "0x18616c0a8389a2cabf596f91d3e6ccc626e58997",
    ],
    "policy": [
        {
            "id": "sequencer-uptime-error-removed",
            "rationale": (
                "Deployed Constants.sol drops the unused SequencerUptimeFeedInvalid error."
            ),
            "artifacts": [
                "0xd0186335f7b7c390b6d6c0c021212243ed297dda",
                "0x9d97c76102e72883cd25fa60e0f4143516d5b6db",
                "0xcfd55ac7647454ea0f7c4c9ec231e0a282b30980",
            ],
            "signature": {
                "line_count": 15,
                "header": "Index: src/utils/Constants.sol",
                "hunk_header": "@@ -27,9 +27,8 @@",
                "removed_line": "-    error SequencerUptimeFeedInvalid();",
            },
        }
    ],
    "output": {
        "report_dir": str(DEFAULT_REPORT_DIR),
        "sources_dir": None,
    },
}


@dataclass(frozen=True)
class ReferenceConfig:
    """Where the reference tree comes from."""

    repo_url: str
    revision: str
    setup_commands: tuple[tuple[str, ...], ...] = ()
    overrides: tuple[ReferenceOverride, ...] = ()


@dataclass(frozen=True)
class ExplorerConfig:
    """Explorer API endpoint and pacing."""

    api_url: str
    api_key_env: str = DEFAULT_API_KEY_ENV
    timeout_seconds: float = DEFAULT_TIMEOUT_S
    delay_seconds: float = DEFAULT_DELAY_S

    def api_key(self) -> str:
        return os.getenv(self.api_key_env, "").strip()


@dataclass(frozen=True)
class OutputConfig:
    """Where reports and fetched sources are written."""

    report_dir: Path = DEFAULT_REPORT_DIR
    sources_dir: Path | None = None


@dataclass(frozen=True)
class RunConfig:
    """Normalized run configuration."""

    explorer: ExplorerConfig
    artifacts: tuple[str, ...]
    policy: tuple[PolicyEntry, ...] = ()
    reference: ReferenceConfig | None = None
    output: OutputConfig = field(default_factory=OutputConfig)
    path: Path | None = None


def write_default_config(path: Path, *, force: bool = False) -> Path:
    """Write the template run configuration deterministically."""
    if path.exists() and not force:
        raise FileExistsError(f"Config file already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(CONFIG_TEMPLATE, sort_keys=True), encoding="utf-8")
    return path


def _read_yaml(path: Path) -> Any:
    if not path.exists():
        raise ConfigError(
            f"Missing config at {path}. Run `provcheck init-config` first.",
            CONFIG_REASON_MISSING,
        )
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"{path.name} parse error: {exc}", CONFIG_REASON_PARSE_ERROR) from exc


def load_run_config(path: Path) -> RunConfig:
    """Load, normalize and validate a run configuration file."""
    raw = _read_yaml(path)
    if not isinstance(raw, dict):
        raise ConfigError(
            f"{path.name} parse error: expected mapping at top level",
            CONFIG_REASON_PARSE_ERROR,
        )

    explorer_raw = raw.get("explorer")
    if not isinstance(explorer_raw, dict):
        raise ConfigError(f"{path.name} missing required `explorer` mapping")

    reference_raw = raw.get("reference")
    reference = None
    if reference_raw is not None:
        if not isinstance(reference_raw, dict):
            raise ConfigError("`reference` must be a mapping")
        reference = _normalize_reference(reference_raw)

    artifacts = _normalize_artifacts(raw.get("artifacts"))
    policy = load_policy(raw.get("policy") or [])

    output_raw = raw.get("output") or {}
    if not isinstance(output_raw, dict):
        raise ConfigError("`output` must be a mapping")

    return RunConfig(
        explorer=_normalize_explorer(explorer_raw),
        artifacts=artifacts,
        policy=policy,
        reference=reference,
        output=_normalize_output(output_raw),
        path=path,
    )


def load_policy(raw: Any) -> tuple[PolicyEntry, ...]:
    """Validate raw policy records against the packaged schema and build entries."""
    ok, errors = validate_data(raw, "policy", strict=False)
    if not ok:
        raise ConfigError("policy is invalid:\n" + "\n".join(f"  - {msg}" for msg in errors))

    entries: list[PolicyEntry] = []
    seen: set[str] = set()
    for record in raw:
        entry_id = record["id"].strip()
        if entry_id in seen:
            raise ConfigError(f"duplicate policy entry id `{entry_id}`")
        seen.add(entry_id)

        signature = record["signature"]
        entries.append(
            PolicyEntry(
                id=entry_id,
                artifacts=frozenset(normalize_artifact_id(a) for a in record["artifacts"]),
                signature=DiffSignature(
                    line_count=signature["line_count"],
                    header=signature["header"],
                    hunk_header=signature["hunk_header"],
                    removed_line=signature["removed_line"],
                ),
                rationale=record["rationale"].strip(),
            )
        )
    return tuple(entries)


def load_policy_file(path: Path) -> tuple[PolicyEntry, ...]:
    """Load policy entries from a standalone YAML file (a list, or a mapping with `policy`)."""
    raw = _read_yaml(path)
    if isinstance(raw, dict):
        raw = raw.get("policy")
    if raw is None:
        raw = []
    return load_policy(raw)


def _normalize_reference(raw: dict[str, Any]) -> ReferenceConfig:
    repo_url = str(raw.get("repo_url", "")).strip()
    revision = str(raw.get("revision", "")).strip()
    if not repo_url:
        raise ConfigError("reference.repo_url is required")
    if not revision:
        raise ConfigError("reference.revision is required")

    commands_raw = raw.get("setup_commands") or []
    if not isinstance(commands_raw, list):
        raise ConfigError("reference.setup_commands must be a list of argv lists")
    commands: list[tuple[str, ...]] = []
    for command in commands_raw:
        if isinstance(command, str):
            command = command.split()
        if not isinstance(command, list) or not command or not all(isinstance(a, str) for a in command):
            raise ConfigError("reference.setup_commands must be a list of argv lists")
        commands.append(tuple(command))

    overrides_raw = raw.get("overrides") or []
    if not isinstance(overrides_raw, list):
        raise ConfigError("reference.overrides must be a list")
    overrides: list[ReferenceOverride] = []
    for index, item in enumerate(overrides_raw):
        if not isinstance(item, dict):
            raise ConfigError(f"reference.overrides[{index}] must be a mapping")
        try:
            overrides.append(
                ReferenceOverride(
                    path=str(item["path"]),
                    pattern=str(item["pattern"]),
                    replacement=str(item["replacement"]),
                )
            )
        except KeyError as exc:
            raise ConfigError(f"reference.overrides[{index}] missing `{exc.args[0]}`") from exc

    return ReferenceConfig(
        repo_url=repo_url,
        revision=revision,
        setup_commands=tuple(commands),
        overrides=tuple(overrides),
    )


def _normalize_explorer(raw: dict[str, Any]) -> ExplorerConfig:
    api_url = str(raw.get("api_url", "")).strip()
    if not api_url:
        raise ConfigError("explorer.api_url is required")

    api_key_env = str(raw.get("api_key_env", DEFAULT_API_KEY_ENV)).strip() or DEFAULT_API_KEY_ENV
    try:
        timeout = float(raw.get("timeout_seconds", DEFAULT_TIMEOUT_S))
        delay = float(raw.get("delay_seconds", DEFAULT_DELAY_S))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"explorer timing values must be numbers: {exc}") from exc
    if timeout <= 0:
        raise ConfigError("explorer.timeout_seconds must be > 0")
    if delay < 0:
        raise ConfigError("explorer.delay_seconds must be >= 0")

    return ExplorerConfig(
        api_url=api_url,
        api_key_env=api_key_env,
        timeout_seconds=timeout,
        delay_seconds=delay,
    )


def _normalize_artifacts(value: Any) -> tuple[str, ...]:
    """Normalize artifact identities, dropping duplicates while preserving declaration order."""
    if not isinstance(value, list) or not value:
        raise ConfigError("`artifacts` must be a non-empty list of identities")

    artifacts: list[str] = []
    seen: set[str] = set()
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ConfigError("`artifacts` must be a list of non-empty strings")
        key = normalize_artifact_id(item)
        if key not in seen:
            seen.add(key)
            artifacts.append(item.strip())
    return tuple(artifacts)


def _normalize_output(raw: dict[str, Any]) -> OutputConfig:
    report_dir = raw.get("report_dir") or DEFAULT_REPORT_DIR
    sources_dir = raw.get("sources_dir")
    return OutputConfig(
        report_dir=Path(report_dir),
        sources_dir=Path(sources_dir) if sources_dir else None,
    )
