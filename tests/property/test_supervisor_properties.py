"""Property-based tests for submission and result classification."""

import logging
from unittest.mock import MagicMock

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from aspawn.exceptions import ArgumentError, ExitStatusError, SignalError
from aspawn.protocol import CommandResult
from aspawn.supervisor import Worker, WorkerState, _WorkerProcess, classify_result


def _running_worker() -> tuple[Worker, MagicMock]:
    lg = logging.getLogger("test.aspawn.property")
    lg.disabled = True
    worker = Worker(lg)
    conn = MagicMock()
    worker._child = _WorkerProcess(process=MagicMock(pid=1), conn=conn)
    worker._state = WorkerState.RUNNING
    return worker, conn


_non_strings = st.one_of(
    st.integers(), st.floats(allow_nan=False), st.booleans(), st.none(), st.binary()
)


@pytest.mark.property
@pytest.mark.unit
class TestSubmitProperties:
    """Property-based tests for Worker.submit()."""

    @given(argv=st.lists(st.text(), min_size=1, max_size=10))
    @settings(max_examples=50)
    def test_any_string_argv_is_sent_verbatim(self, argv):
        worker, conn = _running_worker()
        worker.submit(argv, {"env": {}}, MagicMock())
        assert conn.send.call_args.args[0]["argv"] == argv

    @given(
        argv=st.lists(st.text(), min_size=1, max_size=5),
        bad=_non_strings,
        data=st.data(),
    )
    @settings(max_examples=50)
    def test_non_string_element_named_by_index(self, argv, bad, data):
        index = data.draw(st.integers(min_value=0, max_value=len(argv)))
        argv = argv[:index] + [bad] + argv[index:]
        worker, conn = _running_worker()
        with pytest.raises(ArgumentError) as exc_info:
            worker.submit(argv, MagicMock())
        assert f'"argv[{index}]"' in str(exc_info.value)
        conn.send.assert_not_called()

    @given(n=st.integers(min_value=1, max_value=50))
    @settings(max_examples=20)
    def test_ids_strictly_increase(self, n):
        worker, _ = _running_worker()
        ids = [worker.submit(["true"], {"env": {}}, MagicMock()) for _ in range(n)]
        assert ids == sorted(set(ids))
        assert ids[0] == 1


@pytest.mark.property
@pytest.mark.unit
class TestClassifyProperties:
    """Property-based tests for classify_result()."""

    @given(
        code=st.one_of(st.none(), st.integers(min_value=-255, max_value=255)),
        signal=st.one_of(st.none(), st.sampled_from(["SIGTERM", "SIGKILL", "SIGUSR2"])),
    )
    def test_exactly_one_classification(self, code, signal):
        result = CommandResult(id=1, stdout="", stderr="", code=code, signal=signal)
        error = classify_result(result)
        if code == 0:
            assert error is None
        elif code is not None:
            assert isinstance(error, ExitStatusError)
            assert error.code == code
        elif signal is not None:
            assert isinstance(error, SignalError)
            assert error.signal == signal
        else:
            assert str(error) == "unknown error"
