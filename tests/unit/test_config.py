"""Tests for run configuration and policy loading."""
from pathlib import Path

import pytest
import yaml

from provcheck.config import (
    CONFIG_TEMPLATE,
    DEFAULT_REPORT_DIR,
    load_policy,
    load_policy_file,
    load_run_config,
    write_default_config,
)
from provcheck.engine.types import DiffSignature
from provcheck.errors import (
    CONFIG_REASON_MISSING,
    CONFIG_REASON_PARSE_ERROR,
    CONFIG_REASON_SCHEMA_INVALID,
    ConfigError,
)

POLICY_RECORD = {
    "id": "sequencer-uptime-error-removed",
    "rationale": "Unused error removed before deployment.",
    "artifacts": ["0xD0186335F7B7C390B6D6C0C021212243ED297DDA"],
    "signature": {
        "line_count": 15,
        "header": "Index: src/utils/Constants.sol",
        "hunk_header": "@@ -27,9 +27,8 @@",
        "removed_line": "-    error SequencerUptimeFeedInvalid();",
    },
}


def _write(path: Path, data) -> Path:
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def _minimal(**overrides) -> dict:
    data = {
        "explorer": {"api_url": "https://api.arbiscan.io/api"},
        "artifacts": ["0x4f8629c1056d7c7fc7e132ad2234761488baa9be"],
    }
    data.update(overrides)
    return data


def test_template_round_trips(tmp_path: Path) -> None:
    path = write_default_config(tmp_path / "provcheck.yaml")

    config = load_run_config(path)

    assert config.path == path
    assert config.explorer.api_url == CONFIG_TEMPLATE["explorer"]["api_url"]
    assert config.explorer.api_key_env == "ARBISCAN_API_KEY"
    assert len(config.artifacts) == 8
    assert config.reference is not None
    assert config.reference.setup_commands == (("forge", "install"),)
    assert config.reference.overrides[0].path.endswith("PoolAddress.sol")
    assert [entry.id for entry in config.policy] == ["sequencer-uptime-error-removed"]
    assert config.output.report_dir == DEFAULT_REPORT_DIR
    assert config.output.sources_dir is None


def test_write_default_config_refuses_overwrite(tmp_path: Path) -> None:
    path = write_default_config(tmp_path / "provcheck.yaml")

    with pytest.raises(FileExistsError):
        write_default_config(path)
    write_default_config(path, force=True)


def test_write_default_config_is_deterministic(tmp_path: Path) -> None:
    first = write_default_config(tmp_path / "a.yaml").read_text()
    second = write_default_config(tmp_path / "b.yaml").read_text()
    assert first == second


def test_missing_config(tmp_path: Path) -> None:
    with pytest.raises(ConfigError) as exc_info:
        load_run_config(tmp_path / "absent.yaml")
    assert exc_info.value.reason_code == CONFIG_REASON_MISSING


def test_unparseable_config(tmp_path: Path) -> None:
    path = tmp_path / "provcheck.yaml"
    path.write_text("explorer: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError) as exc_info:
        load_run_config(path)
    assert exc_info.value.reason_code == CONFIG_REASON_PARSE_ERROR


def test_top_level_must_be_mapping(tmp_path: Path) -> None:
    path = _write(tmp_path / "provcheck.yaml", ["not", "a", "mapping"])

    with pytest.raises(ConfigError, match="expected mapping"):
        load_run_config(path)


@pytest.mark.parametrize(
    "overrides, fragment",
    [
        ({"explorer": None}, "explorer"),
        ({"explorer": {"api_url": ""}}, "api_url"),
        ({"explorer": {"api_url": "u", "timeout_seconds": 0}}, "timeout_seconds"),
        ({"explorer": {"api_url": "u", "delay_seconds": -1}}, "delay_seconds"),
        ({"explorer": {"api_url": "u", "delay_seconds": "soon"}}, "numbers"),
        ({"artifacts": []}, "artifacts"),
        ({"artifacts": ["0x1", 7]}, "artifacts"),
        ({"reference": {"repo_url": "https://example.com/x.git"}}, "revision"),
        ({"reference": {"repo_url": "r", "revision": "v", "setup_commands": [[]]}}, "setup_commands"),
        ({"reference": {"repo_url": "r", "revision": "v", "overrides": [{"path": "a"}]}}, "pattern"),
        ({"output": ["x"]}, "output"),
    ],
)
def test_invalid_config_sections(tmp_path: Path, overrides: dict, fragment: str) -> None:
    path = _write(tmp_path / "provcheck.yaml", _minimal(**overrides))

    with pytest.raises(ConfigError, match=fragment) as exc_info:
        load_run_config(path)
    assert exc_info.value.reason_code == CONFIG_REASON_SCHEMA_INVALID


def test_artifacts_deduplicated_case_insensitively(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "provcheck.yaml",
        _minimal(artifacts=["0xABC", " 0xabc ", "0xdef", "0xABC"]),
    )

    assert load_run_config(path).artifacts == ("0xABC", "0xdef")


def test_setup_command_string_is_split(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "provcheck.yaml",
        _minimal(reference={"repo_url": "r", "revision": "v", "setup_commands": ["forge install"]}),
    )

    assert load_run_config(path).reference.setup_commands == (("forge", "install"),)


def test_api_key_read_from_named_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write(
        tmp_path / "provcheck.yaml",
        _minimal(explorer={"api_url": "u", "api_key_env": "MY_EXPLORER_KEY"}),
    )
    monkeypatch.setenv("MY_EXPLORER_KEY", " secret ")

    assert load_run_config(path).explorer.api_key() == "secret"


def test_load_policy_normalizes_identities() -> None:
    (entry,) = load_policy([POLICY_RECORD])

    assert entry.artifacts == frozenset({"0xd0186335f7b7c390b6d6c0c021212243ed297dda"})
    assert entry.signature == DiffSignature(
        line_count=15,
        header="Index: src/utils/Constants.sol",
        hunk_header="@@ -27,9 +27,8 @@",
        removed_line="-    error SequencerUptimeFeedInvalid();",
    )


def test_load_policy_accepts_null_signature_fields() -> None:
    record = {**POLICY_RECORD, "signature": {**POLICY_RECORD["signature"], "removed_line": None}}
    (entry,) = load_policy([record])
    assert entry.signature.removed_line is None


@pytest.mark.parametrize(
    "record",
    [
        {k: v for k, v in POLICY_RECORD.items() if k != "signature"},
        {**POLICY_RECORD, "artifacts": []},
        {**POLICY_RECORD, "signature": {**POLICY_RECORD["signature"], "line_count": 0}},
        {**POLICY_RECORD, "signature": {"line_count": 15, "header": "Index: x"}},
        {**POLICY_RECORD, "similarity": 0.9},
    ],
)
def test_load_policy_rejects_invalid_records(record: dict) -> None:
    with pytest.raises(ConfigError, match="policy is invalid"):
        load_policy([record])


def test_load_policy_rejects_duplicate_ids() -> None:
    with pytest.raises(ConfigError, match="duplicate"):
        load_policy([POLICY_RECORD, POLICY_RECORD])


def test_load_policy_file_list_and_mapping(tmp_path: Path) -> None:
    as_list = _write(tmp_path / "list.yaml", [POLICY_RECORD])
    as_mapping = _write(tmp_path / "mapping.yaml", {"policy": [POLICY_RECORD]})

    assert load_policy_file(as_list) == load_policy_file(as_mapping)


def test_load_policy_file_empty(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert load_policy_file(path) == ()
