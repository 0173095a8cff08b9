"""Read-only FastAPI server over the perftrend results database."""
import logging
from typing import Dict, Iterator, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException

from perftrend import __version__
from perftrend.config import settings, setup_logging
from perftrend.server.store import ResultStore
from perftrend.toolkit import Toolchain, default_catalog

from .models import CatalogTestModel, CommitModel, ResultModel, SystemHealthResponse
from .utils import get_system_health

logger = logging.getLogger("perftrend.api")

app = FastAPI(
    title="perftrend",
    description="Performance trend results for the toolchain under test",
    version=__version__,
)


def get_store() -> Iterator[ResultStore]:
    store = ResultStore(settings.db_path)
    try:
        yield store
    finally:
        store.close()


def get_tests() -> List[CatalogTestModel]:
    catalog = default_catalog(settings.scratch_dir, Toolchain.from_settings(settings))
    return [CatalogTestModel(**test.metadata()) for test in catalog]


@app.get("/", response_model=Dict[str, str])
def root() -> Dict[str, str]:
    return {"message": "perftrend API", "version": __version__}


@app.get("/health", response_model=SystemHealthResponse)
def health(store: ResultStore = Depends(get_store)) -> SystemHealthResponse:
    return SystemHealthResponse(**get_system_health(store))


@app.get("/commits", response_model=List[CommitModel])
def list_commits(
    build_failed: Optional[bool] = None,
    store: ResultStore = Depends(get_store),
) -> List[CommitModel]:
    commits = store.get_commits()
    if build_failed is not None:
        commits = [c for c in commits if c.build_failed == build_failed]
    return [CommitModel(**c.to_dict()) for c in commits]


@app.get("/commits/{commit}/results", response_model=List[ResultModel])
def commit_results(commit: str, store: ResultStore = Depends(get_store)) -> List[ResultModel]:
    results = store.get_results(commit=commit)
    if not results and commit not in {c.commit for c in store.get_commits()}:
        raise HTTPException(status_code=404, detail=f"Unknown commit {commit}")
    return [ResultModel(**r.to_dict()) for r in results]


@app.get("/results", response_model=List[ResultModel])
def list_results(
    test_id: Optional[str] = None,
    store: ResultStore = Depends(get_store),
) -> List[ResultModel]:
    return [ResultModel(**r.to_dict()) for r in store.get_results(test_id=test_id)]


@app.get("/tests", response_model=List[CatalogTestModel])
def list_tests(tests: List[CatalogTestModel] = Depends(get_tests)) -> List[CatalogTestModel]:
    return tests


def main() -> None:
    setup_logging("api")
    uvicorn.run(
        "perftrend.server.api.server:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
