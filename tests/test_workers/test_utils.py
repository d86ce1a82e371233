"""Unit tests for workers/utils.py async bridge and database handles."""

import asyncio
from unittest.mock import MagicMock, patch

import pytest

from workers import utils


@pytest.mark.unit
class TestRunAsync:
    """Test the async-to-sync bridge function."""

    def test_run_async_basic(self) -> None:
        """run_async should execute a coroutine and return its value."""

        async def simple_coro():
            await asyncio.sleep(0)
            return 42

        assert utils.run_async(simple_coro()) == 42

    def test_run_async_propagates_errors(self) -> None:
        """run_async should propagate exceptions from the coroutine."""

        async def failing_coro():
            raise ValueError("test error")

        with pytest.raises(ValueError, match="test error"):
            utils.run_async(failing_coro())


@pytest.mark.unit
class TestGetTaskEngine:
    """Test worker engine creation."""

    def test_requires_database_url(self, mock_settings: MagicMock) -> None:
        """A missing DATABASE_URL is a configuration error."""
        mock_settings.database_url = None
        with patch.object(utils, "_engine", None), patch.object(
            utils, "get_task_settings", return_value=mock_settings
        ):
            with pytest.raises(ValueError, match="DATABASE_URL"):
                utils.get_task_engine()

    def test_engine_is_unpooled_and_cached(self, mock_settings: MagicMock) -> None:
        """Each task runs on a new loop, so the engine is built without a pool, once."""
        with patch.object(utils, "_engine", None), patch.object(
            utils, "get_task_settings", return_value=mock_settings
        ), patch.object(utils, "build_engine") as build_engine:
            engine = utils.get_task_engine()
            assert utils.get_task_engine() is engine

        build_engine.assert_called_once_with(mock_settings, pooled=False)

    def test_session_factory_cached(self) -> None:
        """The session factory is created once per process."""
        with patch.object(utils, "_session_factory", None), patch.object(
            utils, "get_task_engine"
        ) as get_engine, patch.object(utils, "build_session_factory") as build_factory:
            first = utils.get_task_session_factory()
            second = utils.get_task_session_factory()

        assert first is second
        build_factory.assert_called_once_with(get_engine.return_value)
