"""
refgraph web api - build graphs and hydrate metadata over HTTP.

run:
    uvicorn refgraph.web.app:app --host 0.0.0.0 --port 8765

endpoints:
    GET  /api/health          → liveness
    POST /api/graph           → citation graph around a paper
    POST /api/author-graph    → graph of an author's works
    POST /api/hydrate         → display metadata for node ids
"""

import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from ..core.config import RefgraphConfig
from ..core.resilience import RefgraphError, SourceFetchError
from ..pipeline import orchestrator

logger = logging.getLogger("refgraph.web")

app = FastAPI(title="refgraph", description="Citation graph builder")
app.state.config = RefgraphConfig.from_env()
# tests swap in a fake; None means a fresh openalex provider per request
app.state.provider = None


# models
class GraphRequest(BaseModel):
    source: str
    n_roots: Optional[int] = Field(default=None, ge=0, le=200)
    n_branches: Optional[int] = Field(default=None, ge=0, le=200)


class AuthorGraphRequest(BaseModel):
    author_id: str
    max_works: Optional[int] = Field(default=None, ge=1, le=1000)


class HydrateRequest(BaseModel):
    ids: List[str]


@app.get("/api/health")
async def health():
    return {"status": "ok"}


@app.post("/api/graph")
async def graph(req: GraphRequest):
    """build a citation graph around req.source."""
    logger.info(f"[web] graph request for {req.source}")
    try:
        result = await orchestrator.build_graph(
            req.source,
            n_roots=req.n_roots,
            n_branches=req.n_branches,
            provider=app.state.provider,
            config=app.state.config
        )
    except SourceFetchError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return result.to_dict()


@app.post("/api/author-graph")
async def author_graph(req: AuthorGraphRequest):
    """build the graph of an author's works."""
    logger.info(f"[web] author graph request for {req.author_id}")
    try:
        result = await orchestrator.build_author_graph(
            req.author_id,
            max_works=req.max_works,
            provider=app.state.provider,
            config=app.state.config
        )
    except SourceFetchError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RefgraphError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return result.to_dict()


@app.post("/api/hydrate")
async def hydrate(req: HydrateRequest):
    """display metadata for bare node ids. ids that can't be fetched are left out."""
    metadata = await orchestrator.hydrate_metadata(
        req.ids,
        provider=app.state.provider,
        config=app.state.config
    )
    return {pid: m.to_dict() for pid, m in metadata.items()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8765)
