"""Synthesis endpoint."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ValidationError
from lanegraph_ir.cluster import parse_cluster_batch
from lanegraph_ir.pipeline import build_zone_graph_ir, synthesize_clusters
from lanegraph_ir.settings import SynthesisSettings
from storage import load_session_json, save_session_json

router = APIRouter()


class SynthesizeRequest(BaseModel):
    session_id: str
    settings: dict | None = None


class SynthesizeResponse(BaseModel):
    clusters: list[dict]


@router.post("/synthesize", response_model=SynthesizeResponse)
async def synthesize(req: SynthesizeRequest):
    """Synthesize roads and polygons for every imported cluster."""
    data = load_session_json(
        req.session_id,
        "clusters.json",
        f"Clusters not found for session {req.session_id}. Please import a cluster file first."
    )

    try:
        settings = SynthesisSettings.model_validate(req.settings or {})
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid settings: {e}")

    try:
        batch = parse_cluster_batch(data)
        results = synthesize_clusters(batch, settings)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to synthesize: {e}")

    zone_graph = build_zone_graph_ir(results, "clusters.json", settings)
    save_session_json(req.session_id, "zonegraph.json", zone_graph.model_dump(mode='json'))

    return SynthesizeResponse(
        clusters=[
            {
                'cluster_id': r.cluster_id,
                'status': r.status,
                'error': r.error,
                'roads': sum(1 for s in r.shapes if s.shape_type == "spline"),
                'polygons': sum(1 for s in r.shapes if s.shape_type == "polygon"),
                'degenerate_roads': r.degenerate_roads,
            }
            for r in results
        ]
    )
