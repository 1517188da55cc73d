"""burstfuse User Configuration.

This is the user-facing configuration file. Modify settings here to customize
the pipeline behavior. Expert defaults live in burstfuse.schemas.param.

Usage:
    python scripts/run_burst_pipeline.py bursts/IMG_0042/ -c scripts/user_config.py
    python scripts/run_burst_pipeline.py bursts/IMG_0042/ -c scripts/user_config.py --robustness High
"""

CONFIG = {
    # ========================================================================
    # OUTPUT
    # ========================================================================
    "OUTPUT_DIR": "./burstfuse_output",   # merged/, converted/, logs/ go here
    "LOG_LEVEL": "INFO",

    # ========================================================================
    # BURST
    # ========================================================================
    "REFERENCE_INDEX": 0,          # Frame the others are aligned to
    "UNIFORM_EXPOSURE": None,      # None = infer from exposure biases

    # ========================================================================
    # MERGE & EXPOSURE
    # ========================================================================
    "ROBUSTNESS": "Medium",        # "Low", "Medium" or "High"
    "EXPOSURE_CONTROL": "LinearFullRange",
    # "Off", "Curve0EV", "Curve1EV", "LinearFullRange", "LinearClip2EV"

    # ========================================================================
    # ALIGNMENT
    # ========================================================================
    "TILE_SIZE": 16,               # Tile size in mosaic periods
    "SEARCH_RADIUS": 4,            # Coarsest-level search radius
    "MAX_WORKERS": 4,              # Decode / align threads

    # ========================================================================
    # DNG CONVERSION (optional)
    # ========================================================================
    "DNG_CONVERTER_PATH": None,    # e.g. "/Applications/Adobe DNG Converter.app"

    # Note: Noise model, pyramid depth and outlier thresholds are
    # configured in burstfuse.schemas.param
}
