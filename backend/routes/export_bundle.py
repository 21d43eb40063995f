"""Export bundle endpoint."""

from fastapi import APIRouter, Response
from pydantic import BaseModel
import zipfile
import json
import io
from storage import load_session_json

router = APIRouter()


class ExportRequest(BaseModel):
    session_id: str


@router.post("/export")
async def export_bundle(req: ExportRequest):
    """Export zip containing zonegraph.json, road_paths.json, polygon_paths.json."""
    zone_graph = load_session_json(
        req.session_id,
        "zonegraph.json",
        f"Zone graph not found for session {req.session_id}. Please run synthesis first."
    )

    road_paths = [p for c in zone_graph['clusters'] for p in c['road_paths']]
    polygon_paths = [p for c in zone_graph['clusters'] for p in c['polygon_paths']]

    zip_buffer = io.BytesIO()
    with zipfile.ZipFile(zip_buffer, 'w', zipfile.ZIP_DEFLATED) as zip_file:
        zip_file.writestr("zonegraph.json", json.dumps(zone_graph, indent=2))
        zip_file.writestr("road_paths.json", json.dumps(road_paths, indent=2))
        zip_file.writestr("polygon_paths.json", json.dumps(polygon_paths, indent=2))

    zip_buffer.seek(0)
    return Response(
        content=zip_buffer.read(),
        media_type="application/zip",
        headers={"Content-Disposition": "attachment; filename=zonegraph_export.zip"}
    )
