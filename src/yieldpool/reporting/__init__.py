"""Export of simulation results."""

from .export import export_csv, export_json, snapshots_frame

__all__ = ["export_csv", "export_json", "snapshots_frame"]
