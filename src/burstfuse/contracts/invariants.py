"""Formal pipeline invariants.

This file documents what each stage MUST produce. This is architecture, not code.
Use this file as a reviewer anchor and system reference.
"""

PIPELINE_INVARIANTS = {
    "frames": [
        "At least one frame; reference index within range",
        "Every frame has a 2D 'raw' variable with dims (y, x)",
        "All frames share the mosaic pattern width (shape is checked by the aligner)",
        "black_levels has pattern_width**2 cells (-1 = unknown)",
    ],

    "pyramid": [
        "One pyramid per frame, finest level first",
        "Every pyramid has at least one level",
        "All pyramids have the same number of levels and level shapes",
    ],

    "alignment": [
        "offset_y and offset_x exist with dims (frame, tile_y, tile_x)",
        "Offsets are integer typed and multiples of the pattern width",
        "|offset| <= max_displacement for every tile",
        "Reference frame offsets are all zero",
    ],

    "merge": [
        "Merged buffer has the reference shape",
        "All merged values are finite",
        "Merged values lie in [0, white_level] ([0, 65535] when unknown)",
    ],

    "exposure": [
        "Corrected buffer has the reference shape",
        "All corrected values are finite and within [0, 65535]",
    ],
}

# Which stages are optional vs required
STAGE_REQUIREMENTS = {
    "frames": "REQUIRED",
    "pyramid": "REQUIRED",
    "alignment": "REQUIRED",    # Single-frame bursts yield an all-zero field
    "merge": "REQUIRED",
    "exposure": "OPTIONAL",     # Skipped for Off or unknown white/black levels
}
