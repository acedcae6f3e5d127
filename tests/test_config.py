import json
import logging

from config import DEFAULT_CONFIG, load_config, merge_config
from logger import LOGGER_NAME, setup_logger


def test_missing_file_creates_defaults(tmp_path):
    path = tmp_path / "config.json"
    config = load_config(str(path))
    assert config == DEFAULT_CONFIG
    assert config is not DEFAULT_CONFIG
    with open(path, encoding="utf-8") as f:
        assert json.load(f) == DEFAULT_CONFIG


def test_partial_file_merged_over_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"api": {"token": "abc"}, "printer": {"line_width": 48}}))
    config = load_config(str(path))
    assert config["api"]["token"] == "abc"
    assert config["api"]["base_url"] == DEFAULT_CONFIG["api"]["base_url"]
    assert config["printer"]["line_width"] == 48
    assert config["search"]["debounce_ms"] == 300


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    assert load_config(str(path)) == DEFAULT_CONFIG


def test_merge_does_not_touch_base():
    base = {"a": {"b": 1, "c": 2}}
    merged = merge_config(base, {"a": {"b": 5}, "d": 1})
    assert merged == {"a": {"b": 5, "c": 2}, "d": 1}
    assert base == {"a": {"b": 1, "c": 2}}


class TestLogger:
    def teardown_method(self):
        logger = logging.getLogger(LOGGER_NAME)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            handler.close()

    def test_file_and_level(self, tmp_path):
        log_file = tmp_path / "logs" / "pos.log"
        logger = setup_logger({"logging": {"level": "warning", "file": str(log_file)}})
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 2

        logging.getLogger(LOGGER_NAME + ".API").warning("server slow")
        for handler in logger.handlers:
            handler.flush()
        assert "POS_Billing.API - WARNING - server slow" in log_file.read_text(encoding="utf-8")

    def test_debug_overrides_level(self):
        logger = setup_logger({"logging": {"level": "ERROR", "file": ""}}, debug=True)
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_reconfiguring_replaces_handlers(self, tmp_path):
        config = {"logging": {"file": ""}}
        setup_logger(config)
        logger = setup_logger(config)
        assert len(logger.handlers) == 1

    def test_unknown_level_falls_back_to_info(self):
        logger = setup_logger({"logging": {"level": "chatty", "file": ""}})
        assert logger.level == logging.INFO

    def test_without_config_logs_to_console_only(self):
        logger = setup_logger()
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.StreamHandler)
        assert logger.level == logging.getLevelName(DEFAULT_CONFIG["logging"]["level"])

    def test_config_load_messages_reach_the_console(self, tmp_path, capsys):
        setup_logger()
        load_config(str(tmp_path / "config.json"))
        assert "Created default configuration" in capsys.readouterr().err
