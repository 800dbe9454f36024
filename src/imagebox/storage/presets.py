"""
Built-in providers, models and prompt templates.

Presets are created once, on first initialization of a store. Preset
providers and models carry fixed "preset-" ids; users configure the API
keys themselves. Deleted presets are not re-created.
"""

from __future__ import annotations

import json
from typing import Any

from imagebox.storage.models import PRESET_ID_PREFIX

# Setting keys recording one-time initialization
PRESETS_INITIALIZED_KEY = "presetsInitialized"
PRESET_TEMPLATES_INITIALIZED_KEY = "presetsTemplatesInitialized"
PRESET_MIGRATION_V2_KEY = "presetMigrationV2Done"

# Settings kept by a configuration reset
PRESERVED_SETTING_KEYS = frozenset(
    {
        PRESETS_INITIALIZED_KEY,
        PRESET_TEMPLATES_INITIALIZED_KEY,
        PRESET_MIGRATION_V2_KEY,
    }
)

_GEMINI_2_5_FLASH_IMAGE = {
    "supportedParams": ["aspectRatio", "responseModalities", "refImagesEnabled"],
    "defaults": {
        "aspectRatio": "1:1",
        "responseModalities": ["IMAGE"],
        "refImagesEnabled": True,
    },
    "maxRefImages": 2,
}

_GEMINI_3_PRO_IMAGE = {
    "supportedParams": ["aspectRatio", "imageSize", "responseModalities", "refImagesEnabled"],
    "defaults": {
        "aspectRatio": "1:1",
        "imageSize": "1K",
        "responseModalities": ["IMAGE"],
        "refImagesEnabled": True,
    },
    "maxRefImages": 14,
}

_GEMINI_OPENROUTER = {
    "supportedParams": ["aspectRatio", "imageSize", "responseModalities", "refImagesEnabled"],
    "defaults": {
        "aspectRatio": "1:1",
        "imageSize": "1K",
        "responseModalities": ["image"],
        "refImagesEnabled": True,
    },
    "maxRefImages": 14,
}

_GRSAI_NANO_BANANA = {
    "supportedParams": ["aspectRatio", "imageSize", "refImagesEnabled"],
    "defaults": {
        "aspectRatio": "1:1",
        "imageSize": "1K",
        "refImagesEnabled": True,
    },
    "maxRefImages": 14,
}


PRESET_PROVIDERS: list[dict[str, Any]] = [
    {
        "id": f"{PRESET_ID_PREFIX}google-gemini",
        "name": "Google Gemini",
        "type": "GEMINI",
        "base_url": "https://generativelanguage.googleapis.com",
    },
    {
        "id": f"{PRESET_ID_PREFIX}openrouter",
        "name": "OpenRouter",
        "type": "OPENAI",
        "base_url": "https://openrouter.ai/api/v1",
    },
    {
        "id": f"{PRESET_ID_PREFIX}grsai",
        "name": "GRSAI",
        "type": "GEMINI",
        "base_url": "https://grsai.dakka.com.cn",
    },
]

PRESET_MODELS: list[dict[str, Any]] = [
    {
        "id": f"{PRESET_ID_PREFIX}gemini-3-flash",
        "name": "Gemini 3 Flash",
        "model_identifier": "models/gemini-3-flash-preview",
        "type": "TEXT",
        "provider_id": f"{PRESET_ID_PREFIX}google-gemini",
        "parameter_config": json.dumps({}),
    },
    {
        "id": f"{PRESET_ID_PREFIX}gemini-3-pro-image",
        "name": "Gemini 3 Pro Image",
        "model_identifier": "models/gemini-3-pro-image-preview",
        "type": "IMAGE",
        "provider_id": f"{PRESET_ID_PREFIX}google-gemini",
        "parameter_config": json.dumps(_GEMINI_3_PRO_IMAGE),
    },
    {
        "id": f"{PRESET_ID_PREFIX}gemini-2-5-flash-image",
        "name": "Gemini 2.5 Flash Image",
        "model_identifier": "gemini-2.5-flash-image",
        "type": "IMAGE",
        "provider_id": f"{PRESET_ID_PREFIX}google-gemini",
        "parameter_config": json.dumps(_GEMINI_2_5_FLASH_IMAGE),
    },
    {
        "id": f"{PRESET_ID_PREFIX}or-gemini-3-pro-image",
        "name": "Gemini 3 Pro Image (OpenRouter)",
        "model_identifier": "google/gemini-3-pro-image-preview",
        "type": "IMAGE",
        "provider_id": f"{PRESET_ID_PREFIX}openrouter",
        "parameter_config": json.dumps(_GEMINI_OPENROUTER),
    },
    {
        "id": f"{PRESET_ID_PREFIX}or-gemini-2-5-flash-image",
        "name": "Gemini 2.5 Flash Image (OpenRouter)",
        "model_identifier": "google/gemini-2.5-flash-image",
        "type": "IMAGE",
        "provider_id": f"{PRESET_ID_PREFIX}openrouter",
        "parameter_config": json.dumps(_GEMINI_OPENROUTER),
    },
    {
        "id": f"{PRESET_ID_PREFIX}grsai-nano-banana-pro",
        "name": "Nano Banana Pro",
        "model_identifier": "nano-banana-pro",
        "type": "IMAGE",
        "provider_id": f"{PRESET_ID_PREFIX}grsai",
        "parameter_config": json.dumps(_GRSAI_NANO_BANANA),
    },
    {
        "id": f"{PRESET_ID_PREFIX}grsai-nano-banana-fast",
        "name": "Nano Banana Fast",
        "model_identifier": "nano-banana-fast",
        "type": "IMAGE",
        "provider_id": f"{PRESET_ID_PREFIX}grsai",
        "parameter_config": json.dumps(_GRSAI_NANO_BANANA),
    },
]

PRESET_TEMPLATES: list[dict[str, Any]] = [
    {
        "name": "Universal Optimizer",
        "prompt_template": "{{user_input}}",
        "system_prompt": (
            "You are a creative AI prompt optimization expert. Enhance the user's "
            "prompt to be more detailed, vivid, and effective for AI image "
            "generation while maintaining their core intent. Add appropriate "
            "details about composition, lighting, style, and atmosphere that "
            "would improve the final image quality."
        ),
    },
    {
        "name": "Presentation Graphics",
        "prompt_template": "{{user_input}}",
        "system_prompt": (
            "You are a professional presentation designer. Transform the user's "
            "concept into a clear, professional prompt optimized for creating "
            "business presentation graphics. Focus on clarity, professionalism, "
            "and visual impact suitable for slides. Emphasize clean layouts, "
            "corporate aesthetics, and information clarity."
        ),
    },
]

PRESET_TEMPLATE_NAMES = frozenset(t["name"] for t in PRESET_TEMPLATES)
