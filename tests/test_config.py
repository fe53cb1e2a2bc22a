import logging

from playlist_curator.utils.config import load_config, setup_logging, validate_config


def test_load_config_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("CURATOR_BATCH_SIZE", "4")
    monkeypatch.setenv("CURATOR_CURATION_TEMPERATURE", "0.9")
    monkeypatch.setenv("CURATOR_RESERVED_CATEGORIES", "archive, bin ,")
    monkeypatch.delenv("CURATOR_DEFAULT_CATEGORY", raising=False)

    config = load_config()

    assert config["batch_size"] == 4
    assert config["curation_temperature"] == 0.9
    assert config["reserved_categories"] == ["archive", "bin"]
    assert config["default_category"] == "recently_added"


def test_defaults_are_valid(monkeypatch) -> None:
    for name in ("CURATOR_BATCH_SIZE", "CURATOR_RESERVED_CATEGORIES", "CURATOR_DEFAULT_CATEGORY"):
        monkeypatch.delenv(name, raising=False)
    assert validate_config(load_config()) == []


def test_availability_wait_settings(monkeypatch) -> None:
    monkeypatch.setenv("CURATOR_AVAILABILITY_WAIT_SECONDS", "0")
    monkeypatch.setenv("CURATOR_AVAILABILITY_POLL_SECONDS", "2.5")

    config = load_config()

    assert config["availability_wait_seconds"] == 0.0
    assert config["availability_poll_seconds"] == 2.5
    assert validate_config({"availability_wait_seconds": -1, "availability_poll_seconds": 0}) == [
        "CURATOR_AVAILABILITY_WAIT_SECONDS cannot be negative",
        "CURATOR_AVAILABILITY_POLL_SECONDS must be positive",
    ]


def test_validate_config_reports_every_problem() -> None:
    errors = validate_config(
        {
            "batch_size": 0,
            "batch_timeout_ms": -1,
            "classify_temperature": 3.0,
            "curation_top_k": 0,
            "default_category": "done",
            "reserved_categories": ["done", "trash"],
        }
    )

    assert "CURATOR_BATCH_SIZE must be at least 1" in errors
    assert "CURATOR_BATCH_TIMEOUT_MS must be positive" in errors
    assert "CURATOR_CLASSIFY_TEMPERATURE must be between 0 and 2" in errors
    assert "CURATOR_CURATION_TOP_K must be at least 1" in errors
    assert "CURATOR_DEFAULT_CATEGORY cannot be a reserved category" in errors


def test_invalid_default_category() -> None:
    errors = validate_config({"default_category": "a/b"})
    assert len(errors) == 1 and "not a valid category name" in errors[0]


def test_setup_logging_with_file(tmp_path) -> None:
    log_file = tmp_path / "curator.log"

    setup_logging("DEBUG", str(log_file))
    logging.getLogger("playlist_curator.test").debug("hello file")

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING
    assert "hello file" in log_file.read_text()
