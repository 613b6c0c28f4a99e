"""
Remote vision-model extraction strategy.

Sends a page image to a vision-capable model through the OpenAI-compatible
chat completions API with a JSON schema response format. Each failed
attempt rotates to the next model in the configured list, since quota
limits are bucketed per model, and waits a linearly growing delay with
jitter. After the last allowed attempt fails the page yields no voters.
"""

from __future__ import annotations

import base64
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Union

from openai import OpenAI

from ..exceptions import ModelResponseError
from ..models import PageInput, RawExtractionRecord, Voter
from ..utils.ai_parser import parse_ai_response
from ..utils.image_utils import crop_to_base64_jpeg, decode_image, normalized_box_to_pixels
from .base import BaseStrategy, ProcessingContext

PHOTO_PADDING_PX = 2
PHOTO_JPEG_QUALITY = 80

_TEXT_PROPERTY = {"type": "string"}

VOTER_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "voters": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "sl_no": {**_TEXT_PROPERTY, "description": "Serial number of the voter"},
                    "epic_no": {**_TEXT_PROPERTY, "description": "EPIC (voter ID) number, e.g. ABC1234567"},
                    "name_en": {**_TEXT_PROPERTY, "description": "Name of the voter in English"},
                    "name_te": {**_TEXT_PROPERTY, "description": "Name of the voter in Telugu"},
                    "relative_name": {**_TEXT_PROPERTY, "description": "Father/Husband/Mother/Guardian name"},
                    "house_no": {**_TEXT_PROPERTY, "description": "House number"},
                    "age": {**_TEXT_PROPERTY, "description": "Age of the voter"},
                    "gender": {**_TEXT_PROPERTY, "description": "Gender (Male/Female/Other)"},
                    "assembly_name": {**_TEXT_PROPERTY, "description": "Assembly constituency name from the page header"},
                    "parliament_name": {**_TEXT_PROPERTY, "description": "Parliamentary constituency name from the page header"},
                    "polling_station_no": {**_TEXT_PROPERTY, "description": "Polling station number/name from the page header"},
                    "photo_box_2d": {
                        "type": "array",
                        "items": {"type": "number"},
                        "description": "Voter photo bounding box [ymin, xmin, ymax, xmax] normalized to 0-1000",
                    },
                },
                "required": ["name_en", "epic_no"],
            },
        },
    },
    "required": ["voters"],
}


def build_prompt(include_photos: bool) -> str:
    photo_line = (
        "Identify photo bounding boxes [ymin, xmin, ymax, xmax] (0-1000)."
        if include_photos else
        "Ignore photo bounding boxes."
    )
    return (
        "Analyze this Electoral Roll page image.\n"
        "Identify the grid of voter ID cards. Each card typically contains:\n"
        "- Name (English & Telugu)\n"
        "- Father's/Husband's Name\n"
        "- House Number\n"
        "- Age & Gender\n"
        "- EPIC Number (top of the card)\n"
        "- Serial Number\n\n"
        "Extract ALL voter records visible in the grid. Ignore general instructions "
        "and footers unless they contain Assembly/Polling station info.\n"
        "Repeat the page header info (Assembly, Parliament, Polling Station) for every voter.\n"
        f"{photo_line}\n\n"
        'Return JSON of the form {"voters": [...]} following the schema.'
    )


def select_model(attempt: int, models: Sequence[str]) -> str:
    """Model for a zero-based attempt index."""
    return models[attempt % len(models)]


def backoff_delay(attempt: int, base_delay: float, jitter: float = 0.0) -> float:
    """Seconds to wait after failed attempt number attempt (zero-based)."""
    return base_delay * (attempt + 1) + jitter


@dataclass(frozen=True)
class Success:
    records: List[RawExtractionRecord]


@dataclass(frozen=True)
class Retry:
    next_model: str
    delay: float


@dataclass(frozen=True)
class Exhausted:
    attempts: int


AttemptOutcome = Union[Success, Retry, Exhausted]


class RemoteVisionStrategy(BaseStrategy):
    """
    Extract voters from a page image with a remote vision model.

    Processing Flow:
    1. Attempt(i) calls models[i % len(models)] with the schema
    2. Parse the reply, tolerating prose, fences and wrapper shapes
    3. On failure sleep base * (i + 1) + jitter and try the next model
    4. Coerce records and optionally crop photos from returned boxes

    Attempts for one page are strictly sequential.
    """

    name = "RemoteVisionStrategy"

    def __init__(
        self,
        context: ProcessingContext,
        include_photos: Optional[bool] = None,
        client: Any = None,
        sleep: Callable[[float], None] = time.sleep,
        jitter: Optional[Callable[[], float]] = None,
    ):
        super().__init__(context)
        self.ai = self.config.ai
        self.include_photos = (
            self.config.coordinator.include_photos if include_photos is None else include_photos
        )
        self.client = client
        self.models = list(self.ai.models)
        self.max_retries = self.ai.max_retries
        self._sleep = sleep
        self._jitter = jitter or (lambda: random.uniform(0, self.ai.retry_jitter_sec))

    def validate(self) -> bool:
        if self.client is not None:
            return True
        if not self.ai.api_key:
            self.log_error("AI_API_KEY not set. Please set in .env or environment variables.")
            return False
        if not self.models:
            self.log_error("AI_MODELS is empty")
            return False
        return True

    def _init_client(self) -> None:
        """Initialize AI client (OpenAI-compatible interface)."""
        if self.client is not None:
            return

        base_url = self.ai.get_normalized_base_url()
        self.client = OpenAI(
            api_key=self.ai.api_key,
            base_url=base_url if base_url else None,
            timeout=self.ai.timeout_sec,
        )
        self.context.stats.ai_usage.provider = self.ai.provider
        self.log_info(f"Initialized AI client with models {', '.join(self.models)}")

    def _request(self, model: str, image_b64: str) -> str:
        completion = self.client.chat.completions.create(
            model=model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/jpeg;base64,{image_b64}"},
                        },
                        {"type": "text", "text": build_prompt(self.include_photos)},
                    ],
                }
            ],
            response_format={
                "type": "json_schema",
                "json_schema": {"name": "voter_records", "schema": VOTER_SCHEMA},
            },
        )

        usage = getattr(completion, "usage", None)
        if usage is not None:
            input_tokens = int(getattr(usage, "prompt_tokens", 0) or 0)
            output_tokens = int(getattr(usage, "completion_tokens", 0) or 0)
            self.context.stats.ai_usage.add_call(
                model,
                input_tokens,
                output_tokens,
                self.ai.estimate_cost(input_tokens, output_tokens),
            )

        choices = getattr(completion, "choices", None)
        if not choices:
            raise ModelResponseError("Model returned no choices", model=model)
        return str(choices[0].message.content or "")

    def attempt(self, i: int, image_b64: str, page_number: int) -> AttemptOutcome:
        """Run one attempt and decide what happens next."""
        model = select_model(i, self.models)
        try:
            content = self._request(model, image_b64)
            raw = parse_ai_response(content, model=model)
            return Success([RawExtractionRecord.from_dict(r) for r in raw])
        except Exception as e:
            self.context.stats.ai_usage.add_failure(model)
            if i + 1 >= self.max_retries:
                self.log_error(f"Max retries reached for page {page_number}. Skipping.", error=e)
                return Exhausted(i + 1)

            next_model = select_model(i + 1, self.models)
            delay = backoff_delay(i, self.ai.retry_base_delay_sec, self._jitter())
            self.log_warning(
                f"Attempt {i + 1} failed on {model} for page {page_number}: {e}. "
                f"Switching to {next_model} in {delay:.1f}s"
            )
            return Retry(next_model, delay)

    def extract(self, page: PageInput) -> List[Voter]:
        if not page.image_bytes:
            self.log_warning(f"No page image for page {page.page_number}")
            return []

        self._init_client()
        image_b64 = base64.b64encode(page.image_bytes).decode("ascii")

        for i in range(self.max_retries):
            outcome = self.attempt(i, image_b64, page.page_number)
            if isinstance(outcome, Success):
                return self._to_voters(outcome.records, page)
            if isinstance(outcome, Exhausted):
                return []
            self._sleep(outcome.delay)
        return []

    def _to_voters(self, records: List[RawExtractionRecord], page: PageInput) -> List[Voter]:
        image = None
        if self.include_photos and any(r.photo_box_2d for r in records):
            image = decode_image(page.image_bytes)

        voters = []
        for record in records:
            photo = None
            if image is not None and record.photo_box_2d:
                photo = self._crop_photo(image, record.photo_box_2d, page.page_number)
            voters.append(record.to_voter(page.page_number, photo))

        self.log_debug(f"Vision page {page.page_number}", voters=len(voters))
        return voters

    def _crop_photo(self, image, box: List[float], page_number: int) -> Optional[str]:
        h, w = image.shape[:2]
        try:
            pixels = normalized_box_to_pixels(box, w, h, padding=PHOTO_PADDING_PX)
            return crop_to_base64_jpeg(image, pixels, PHOTO_JPEG_QUALITY)
        except Exception as e:
            self.log_debug(f"Photo crop failed on page {page_number}: {e}")
            return None
