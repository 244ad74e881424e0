"""
Central Configuration
All constants, mappings, and settings in one place
"""

import os

# === PRESET STORAGE ===
PRESETS_SUBDIR = "presets"
PRESETS_FILENAME = "presets.json"

# Portable preset documents (import/export)
PRESET_FILE_EXTENSION = "lpreset"
PRESET_DOCUMENT_VERSION = 1
EXPORT_ALL_BASENAME = "all_presets"

# Suffix appended to the name of a duplicated preset
DUPLICATE_SUFFIX = " Copy"

# === PERSISTENCE ===
# Quiet period after the last mutation before the snapshot is written
PERSIST_DEBOUNCE_MS = int(os.environ.get("PL_PERSIST_DEBOUNCE_MS", "500"))

# === PREVIEWS ===
# Upper bound for a single render call; 0 disables the timeout
PREVIEW_RENDER_TIMEOUT_MS = int(os.environ.get("PL_PREVIEW_TIMEOUT_MS", "15000"))

# === ADJUSTMENTS ===
# Keys of the working adjustment state that may be copied into a preset.
# Anything else (crop, masks, rotation, ...) is image specific and never stored.
COPYABLE_ADJUSTMENT_KEYS = (
    "blacks",
    "clarity",
    "colorGrading",
    "colorNoiseReduction",
    "contrast",
    "curves",
    "dehaze",
    "enableNegativeConversion",
    "exposure",
    "filmBaseColor",
    "grainAmount",
    "grainRoughness",
    "grainSize",
    "highlights",
    "hsl",
    "lumaNoiseReduction",
    "negativeBlueBalance",
    "negativeGreenBalance",
    "negativeRedBalance",
    "saturation",
    "sectionVisibility",
    "shadows",
    "sharpness",
    "structure",
    "temperature",
    "tint",
    "vibrance",
    "vignetteAmount",
    "vignetteFeather",
    "vignetteMidpoint",
    "vignetteRoundness",
    "whites",
)
COPYABLE_ADJUSTMENT_KEY_SET = frozenset(COPYABLE_ADJUSTMENT_KEYS)

# === LOGGING ===
LOG_COMPONENTS = {
    'store': "STORE",
    'sync': "SYNC",
    'preview': "PREVIEW",
    'codec': "CODEC",
    'dnd': "DND",
}

# Console threshold; the Qt console handler always receives DEBUG and up
LOG_LEVEL = os.environ.get("PL_LOG_LEVEL", "INFO").upper()
