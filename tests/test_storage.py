"""Tests for SQLite persistence."""

import sqlite3
import tempfile
from pathlib import Path

import pytest

from copybot.models import Side
from copybot.storage import CopyBotDB
from tests.mocks.factories import ME, TARGET, make_position, make_trade


@pytest.fixture
def temp_db():
    """Temporary database for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        yield CopyBotDB(str(db_path))


class TestTradeEvents:
    def test_insert_and_find_by_hash(self, temp_db):
        trade = make_trade(transaction_hash="0xabc", side="SELL", usdc_size=12.5)
        event_id = temp_db.insert_event(trade)
        assert event_id is not None

        stored = temp_db.find_by_hash("0xabc")
        assert stored.id == event_id
        assert stored.side == Side.SELL
        assert stored.usdc_size == 12.5
        assert stored.processed is False
        assert stored.retry_count == 0

    def test_duplicate_hash_ignored(self, temp_db):
        assert temp_db.insert_event(make_trade(transaction_hash="0xdup")) is not None
        assert temp_db.insert_event(make_trade(transaction_hash="0xdup")) is None
        assert temp_db.count_events() == 1

    def test_find_latest_by_wallet(self, temp_db):
        temp_db.insert_event(make_trade(timestamp=100))
        temp_db.insert_event(make_trade(timestamp=300))
        temp_db.insert_event(make_trade(timestamp=200))
        temp_db.insert_event(make_trade(timestamp=900, proxy_wallet=ME))

        assert temp_db.find_latest(TARGET).timestamp == 300
        assert temp_db.find_latest().timestamp == 900
        assert temp_db.find_latest("0x" + "c" * 40) is None

    def test_find_pending_in_insertion_order(self, temp_db):
        first = temp_db.insert_event(make_trade(timestamp=300))
        second = temp_db.insert_event(make_trade(timestamp=100))
        done = temp_db.insert_event(make_trade(processed=True))
        exhausted = temp_db.insert_event(make_trade())
        temp_db.update_event_state(exhausted, retry_count=3, processed=False)
        temp_db.insert_event(make_trade(type="REDEEM"))

        pending = temp_db.find_pending(retry_limit=3)
        assert [e.id for e in pending] == [first, second]
        assert done not in [e.id for e in pending]

    def test_update_event_state(self, temp_db):
        event_id = temp_db.insert_event(make_trade())
        temp_db.update_event_state(event_id, retry_count=2, processed=False)
        event = temp_db.get_event(event_id)
        assert event.retry_count == 2
        assert event.processed is False

    def test_has_pending_exit(self, temp_db):
        temp_db.insert_event(
            make_trade(transaction_hash="STOP_LOSS_1792238400000", condition_id="cond-9")
        )
        assert temp_db.has_pending_exit("cond-9") is True
        assert temp_db.has_pending_exit("cond-1") is False


class TestPositions:
    def test_upsert_by_market(self, temp_db):
        temp_db.upsert_position(make_position(size=10.0, current_value=5.0))
        temp_db.upsert_position(make_position(size=25.0, current_value=12.0))
        temp_db.upsert_position(make_position(condition_id="cond-2"))

        positions = temp_db.get_positions()
        assert len(positions) == 2
        updated = [p for p in positions if p.condition_id == "cond-1"][0]
        assert updated.size == 25.0
        assert updated.current_value == 12.0


class TestSchema:
    def test_reopen_existing_db(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = str(Path(tmpdir) / "test.db")
            CopyBotDB(db_path).insert_event(make_trade(transaction_hash="0xkeep"))
            assert CopyBotDB(db_path).find_by_hash("0xkeep") is not None

    def test_schema_version_mismatch(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = str(Path(tmpdir) / "test.db")
            CopyBotDB(db_path)
            conn = sqlite3.connect(db_path)
            conn.execute("UPDATE metadata SET value = '99' WHERE key = 'schema_version'")
            conn.commit()
            conn.close()

            with pytest.raises(RuntimeError, match="Schema version mismatch"):
                CopyBotDB(db_path)
