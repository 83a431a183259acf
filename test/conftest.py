import sys
from datetime import datetime, timedelta
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


class FixedClock:
    """Settable clock; each call returns ``now`` and then advances by ``step``."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current

    def set(self, moment: datetime) -> None:
        self.now = moment


def make_container(tmp_path: Path, clock=None, name: str = "ledger.db"):
    from stockledger.application.container import build_container

    return build_container(tmp_path / name, backup_dir=tmp_path / "backups", clock=clock)


def make_owner(container, name: str = "Store") -> int:
    return container.owners.register_account(name).id
