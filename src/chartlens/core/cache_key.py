"""
Cache keys for analysis requests.

A key fingerprints a request from the first IMAGE_PREFIX_BYTES of the image,
the first PROMPT_PREFIX_CHARS of the prompt and the upload metadata. It is
cheap for large images but not a content hash: two different images that
share their first kilobyte and every metadata field map to the same key.
"""

import base64
import hashlib
import json

from chartlens.core.models import AnalysisRequest

KEY_NAMESPACE = "analysis"
IMAGE_PREFIX_BYTES = 1000
PROMPT_PREFIX_CHARS = 200


async def build_cache_key(request: AnalysisRequest) -> str:
    """
    Build the cache / de-duplication key for a request.

    Args:
        request: The (image, prompt) pair

    Returns:
        "analysis:<sha256 hex>"

    Raises:
        EncodingError: If the image bytes cannot be read
    """
    image = request.image
    prefix = await image.read_prefix(IMAGE_PREFIX_BYTES)
    fingerprint = {
        "content": base64.b64encode(prefix).decode("ascii"),
        "prompt": request.prompt[:PROMPT_PREFIX_CHARS],
        "size": image.size,
        "name": image.name,
        "type": image.mime_type,
        "lastModified": image.last_modified,
    }
    canonical = json.dumps(fingerprint, sort_keys=True, separators=(",", ":"))
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return f"{KEY_NAMESPACE}:{digest}"
