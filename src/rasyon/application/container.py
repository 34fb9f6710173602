from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from rasyon.config import AppSettings
from rasyon.repositories.contracts import DocumentRepository
from rasyon.repositories.remote_repo import RemoteDocumentRepository
from rasyon.repositories.sqlite_repo import SqliteRepository
from rasyon.services.accounting_service import AccountingService
from rasyon.services.backup_service import BackupService
from rasyon.services.ingredient_service import IngredientService
from rasyon.services.market_service import MarketService
from rasyon.services.planning_service import PlanningService
from rasyon.services.recipe_service import RecipeService
from rasyon.services.reporting_service import ReportingService
from rasyon.services.state_service import StateService


@dataclass(frozen=True)
class AppContainer:
    repo: DocumentRepository
    store: StateService
    ingredients: IngredientService
    recipes: RecipeService
    market: MarketService
    planning: PlanningService
    accounting: AccountingService
    backup: BackupService
    reporting: ReportingService


def build_container(
    db_path: Path | str,
    settings: AppSettings | None = None,
    exports_dir: Path | str | None = None,
) -> AppContainer:
    settings = settings or AppSettings()

    cache = SqliteRepository(db_path)
    cache.init_db()
    repo: DocumentRepository = cache
    if settings.remote_url:
        repo = RemoteDocumentRepository(settings.remote_url, cache, token=settings.remote_token)

    store = StateService(repo, user_id=settings.user_id, settings=settings, autosave_every=settings.autosave_every)
    store.load()

    planning = PlanningService(store, settings)
    accounting = AccountingService(store, settings)

    return AppContainer(
        repo=repo,
        store=store,
        ingredients=IngredientService(store),
        recipes=RecipeService(store),
        market=MarketService(store),
        planning=planning,
        accounting=accounting,
        backup=BackupService(store, exports_dir or Path(db_path).parent / "exports"),
        reporting=ReportingService(accounting, planning),
    )
