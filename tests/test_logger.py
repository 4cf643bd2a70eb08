"""
Tests for the logging helpers.
"""

import logging

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from snake_duel.utils.logger import (
    LogLevel,
    get_log_path,
    get_logger,
    log_model_event,
    log_training_metrics,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    setup_logging(file_output=False, force=True)


class TestGetLogger:

    def test_namespaced(self):
        assert get_logger('trainer').name == 'snake_duel.trainer'

    def test_module_prefix_not_doubled(self):
        assert get_logger('snake_duel.ai.agent').name == 'snake_duel.ai.agent'


class TestLogLevel:

    def test_from_name(self):
        assert LogLevel.from_name('debug') is LogLevel.DEBUG
        assert LogLevel.from_name('WARNING') is LogLevel.WARNING

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            LogLevel.from_name('chatty')


class TestSetupLogging:

    def test_file_output(self, tmp_path):
        setup_logging(log_dir=str(tmp_path), console_output=False, log_filename='run.log', force=True)
        get_logger('test').info("hello file")
        path = get_log_path()
        assert path == tmp_path / 'run.log'
        for handler in logging.getLogger('snake_duel').handlers:
            handler.flush()
        assert 'hello file' in path.read_text()

    def test_level_applied(self):
        setup_logging(level=LogLevel.WARNING, file_output=False, force=True)
        assert logging.getLogger('snake_duel').level == logging.WARNING
        assert get_log_path() is None


class TestMetricHelpers:

    def test_training_metrics_format(self, caplog):
        with caplog.at_level(logging.INFO, logger='snake_duel'):
            log_training_metrics(100, 0.6, avg_length=42.5, wins=[3, 4], ties=2, loss=0.01, eps_per_sec=12.3)
        message = caplog.records[-1].getMessage()
        assert message == "ep=100 | eps=0.6000 | avg_len=42.5 | wins=3/4 | ties=2 | loss=0.010000 | 12.3 eps/s"

    def test_model_event(self, caplog):
        with caplog.at_level(logging.INFO, logger='snake_duel'):
            log_model_event('save', 'models/m.pt', step=10)
        assert caplog.records[-1].getMessage() == "SAVE | models/m.pt | step=10"
