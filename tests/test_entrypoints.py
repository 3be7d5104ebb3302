import pytest

import linetyper.__main__ as module_main
import linetyper.main as main


def test_module_entrypoint_exits_with_run_status(monkeypatch: pytest.MonkeyPatch) -> None:
    argv_seen: list[object] = []
    monkeypatch.setattr(main, "run", lambda argv=None: argv_seen.append(argv) or 0)
    with pytest.raises(SystemExit) as excinfo:
        module_main.main()
    assert excinfo.value.code == 0
    assert argv_seen == [None]
