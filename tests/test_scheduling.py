"""Tests for the background scheduler and the batch learner."""

from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

import cron
from learnbot.scheduler import LearningScheduler


class TestLearningScheduler:

    def test_start_registers_both_jobs(self):
        backend = MagicMock()
        scheduler = LearningScheduler(lambda: 0, lambda: 0, scheduler=backend, first_run_delay_minutes=5)

        scheduler.start()

        ids = [call.kwargs["id"] for call in backend.add_job.call_args_list]
        assert ids == ["history_learning", "channel_scan"]
        first_run = backend.add_job.call_args_list[0].kwargs["next_run_time"]
        assert first_run > datetime.now()
        assert backend.add_job.call_args_list[0].kwargs["max_instances"] == 1
        backend.add_listener.assert_called_once()
        backend.start.assert_called_once()

    def test_channel_scan_is_optional(self):
        backend = MagicMock()

        LearningScheduler(lambda: 0, scheduler=backend).start()

        assert backend.add_job.call_count == 1

    def test_stop_only_when_running(self):
        backend = MagicMock(running=False)
        LearningScheduler(lambda: 0, scheduler=backend).stop()
        backend.shutdown.assert_not_called()

        backend.running = True
        LearningScheduler(lambda: 0, scheduler=backend).stop()
        backend.shutdown.assert_called_once_with(wait=False)


@pytest.fixture
def batch_env(monkeypatch):
    monkeypatch.setenv("MONGO_URL", "mongodb://localhost:27017")
    monkeypatch.setenv("SLACK_BOT_TOKENS", "xoxb-1,xoxb-2")


class TestBatchLearning:

    def test_visits_every_workspace(self, batch_env):
        with patch("cron.database") as database, \
                patch("cron.WebClient") as web_client, \
                patch("cron.HistoryMiner") as miner_cls, \
                patch("cron.ChannelDirectory") as directory_cls, \
                patch("cron.time.sleep") as sleep:
            database.connect.return_value = MagicMock()
            miner_cls.return_value.mine_channel_history.return_value = 2
            miner_cls.return_value.mine_bot_history.return_value = 1

            assert cron.scheduled_learning() == 0

        assert web_client.call_count == 2
        assert miner_cls.return_value.mine_channel_history.call_count == 2
        miner_cls.return_value.mine_bot_history.assert_called_once()
        assert directory_cls.return_value.scan_all_channels.call_count == 2
        sleep.assert_called_once_with(2)
        database.connect.assert_called_once_with(strict=True)
        database.close.assert_called_once()

    def test_exits_non_zero_without_database(self, batch_env):
        with patch("cron.database") as database:
            database.connect.side_effect = ConnectionError("refused")

            assert cron.scheduled_learning() == 1

    def test_exits_non_zero_on_fatal_error(self, batch_env):
        with patch("cron.database") as database, \
                patch("cron.WebClient"), \
                patch("cron.HistoryMiner") as miner_cls, \
                patch("cron.time.sleep"):
            database.connect.return_value = MagicMock()
            miner_cls.return_value.mine_channel_history.side_effect = RuntimeError("boom")

            assert cron.scheduled_learning() == 1
        database.close.assert_called_once()
