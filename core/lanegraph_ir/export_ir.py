"""Export canonical IR to JSON."""

from .schemas import ZoneGraphIR
import json


def export_zone_graph_ir(zone_graph_ir: ZoneGraphIR, output_path: str) -> None:
    """Export ZoneGraphIR to JSON file."""
    with open(output_path, 'w') as f:
        json.dump(zone_graph_ir.model_dump(mode='json'), f, indent=2)
