"""Post-processing of validated transfer files.

- GwpProcessor: GeoPackage import, translation, map service and result ZIP
- geopackage: Reads ili2gpkg metadata and detects baskets needing translation
"""

from interlis_worker.processing.gwp import GwpProcessor, PipelineResult

__all__ = ["GwpProcessor", "PipelineResult"]
