"""Cluster import endpoint."""

import json
import uuid
from fastapi import APIRouter, UploadFile, File, HTTPException
from pydantic import BaseModel
from lanegraph_ir.cluster import ClusterContextError, parse_cluster_batch
from storage import save_session_json

router = APIRouter()


class ImportResponse(BaseModel):
    session_id: str
    lane_profiles: list[str]
    clusters: list[dict]


@router.post("/import-cluster", response_model=ImportResponse)
async def import_cluster(file: UploadFile = File(...)):
    """Import a cluster JSON file and return session info."""
    content = await file.read()

    try:
        batch = parse_cluster_batch(json.loads(content))
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=400, detail=f"Cluster file is not valid JSON: {e}")
    except ClusterContextError as e:
        raise HTTPException(status_code=400, detail=str(e))

    # Generate session ID
    session_id = str(uuid.uuid4())
    save_session_json(session_id, "clusters.json", batch.model_dump(mode='json'))

    return ImportResponse(
        session_id=session_id,
        lane_profiles=[p.name for p in batch.lane_profiles],
        clusters=[
            {'cluster_id': c.cluster_id, 'nodes': len(c.nodes), 'edges': len(c.edges)}
            for c in batch.clusters
        ],
    )
