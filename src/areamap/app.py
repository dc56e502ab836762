"""
Flask application serving rendered choropleth maps.

The app wraps a ChoroplethMapper whose tables are already joined (and
optionally filtered) and renders maps on request.
"""

import logging
from typing import Optional, Sequence, Tuple

import matplotlib
from flask import Flask, Response, jsonify, request

from areamap.config import SIMD_DISPLAY_NAMES
from areamap.errors import PipelineError
from areamap.pipeline import ChoroplethMapper

logger = logging.getLogger(__name__)

IMAGE_MIME_TYPES = {
    "png": "image/png",
    "svg": "image/svg+xml",
    "pdf": "application/pdf",
}


def create_app(
    mapper: ChoroplethMapper,
    layers: Optional[Sequence[Tuple[str, str]]] = None,
) -> Flask:
    """Build the Flask app for a joined mapper.

    Args:
        mapper: Mapper whose join() (and filter()) have already run
        layers: (column, display name) pairs; the first drives the static
            map. Defaults to every joined measurement column.
    """
    if mapper.joined is None:
        raise ValueError("Tables not joined. Call join() before create_app().")
    if layers is None:
        layers = [
            (column, SIMD_DISPLAY_NAMES.get(column, column))
            for column in mapper.joined.value_columns
        ]
    if not layers:
        raise ValueError("At least one measurement layer is required")

    matplotlib.use("Agg")
    app = Flask(__name__)
    layers = list(layers)

    @app.errorhandler(PipelineError)
    def handle_pipeline_error(error: PipelineError):
        logger.error("Pipeline failed during %s: %s", error.stage, error.detail)
        return jsonify({"error": error.detail, "stage": error.stage}), 500

    @app.errorhandler(ValueError)
    def handle_value_error(error: ValueError):
        logger.error("Rendering failed: %s", error)
        return jsonify({"error": str(error), "stage": "render"}), 500

    @app.route("/")
    def index():
        """Interactive map with one toggleable layer per measurement."""
        interactive = mapper.render_interactive(layers)
        active = request.args.get("layer")
        if active:
            try:
                interactive.select(active)
            except KeyError:
                return jsonify({
                    "error": f"Unknown layer: {active}",
                    "available": [name for _, name in layers],
                }), 404
        return Response(interactive.to_html(), mimetype="text/html")

    @app.route("/static.<format>")
    def static_image(format: str):
        """Static choropleth of the first (or ?column=) measurement."""
        if format not in IMAGE_MIME_TYPES:
            return jsonify({"error": f"Unsupported format: {format}"}), 400

        column, display = layers[0]
        requested: Optional[str] = request.args.get("column")
        if requested:
            matches = [(c, d) for c, d in layers if c == requested]
            if not matches:
                return jsonify({"error": f"Unknown column: {requested}"}), 404
            column, display = matches[0]

        static = mapper.render_static(column, legend_label=display)
        try:
            image_bytes = static.to_bytes(format=format)
        finally:
            static.close()
        return Response(image_bytes, mimetype=IMAGE_MIME_TYPES[format])

    @app.route("/api/regions")
    def api_regions():
        """Identifier and measurement values of every mapped region."""
        table = mapper.joined
        columns = [table.id_column] + [c for c, _ in layers]
        frame = table.data[columns].astype(object)
        frame = frame.where(frame.notna(), None)
        return jsonify({
            "id_column": table.id_column,
            "count": len(table),
            "regions": frame.to_dict(orient="records"),
        })

    return app
