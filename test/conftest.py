import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def make_store(tmp_path: Path, **kwargs):
    from rasyon.repositories.sqlite_repo import SqliteRepository
    from rasyon.services.state_service import StateService

    tmp_path.mkdir(parents=True, exist_ok=True)
    repo = SqliteRepository(tmp_path / "rasyon.db")
    repo.init_db()
    store = StateService(repo, **kwargs)
    store.load()
    return store
