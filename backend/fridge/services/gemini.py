# fridge/services/gemini.py
# Gemini 호출 클라이언트 (OpenAI 호환 엔드포인트 + openai SDK)
# - 프로세스 시작 시 GeminiConfig로 1회 생성해서 주입 (전역 싱글톤 없음)
# - 생성 호출은 재시도 없음, 타임아웃만 건다

from __future__ import annotations
import asyncio
import base64
import json
import logging
from typing import Any, Dict, List

from openai import AsyncOpenAI

from fridge.core.config import GeminiConfig
from fridge.db.models.ingredient import CATEGORIES, DEFAULT_CATEGORY
from fridge.services.prompts import (
    IMAGE_EXTRACT_PROMPT,
    build_classify_prompt,
    build_safety_prompt,
)

log = logging.getLogger(__name__)


class GeminiNotReady(Exception):
    # 키 없음 등 설정 미완
    pass


def _b64(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")


class GeminiClient:
    def __init__(self, config: GeminiConfig, client: AsyncOpenAI | None = None):
        if not config.key:
            raise GeminiNotReady("GEMINI_API_KEY not set")
        self.config = config
        self._client = client or AsyncOpenAI(api_key=config.key, base_url=config.url)

    async def _chat(self, content: Any, **kw) -> str:
        chat = await asyncio.wait_for(
            self._client.chat.completions.create(
                model=self.config.model_name,
                messages=[{"role": "user", "content": content}],
                **kw,
            ),
            timeout=self.config.timeout,
        )
        if not chat or not chat.choices:
            return ""
        return chat.choices[0].message.content or ""

    async def generate(self, prompt: str) -> str:
        # 프롬프트 → 원문 텍스트 (형식 보장 없음, 파싱은 normalizer 담당)
        log.debug("gemini prompt head: %s...", prompt[:200])
        text = await self._chat(prompt)
        log.info("gemini response received (len=%d)", len(text))
        return text

    async def extract_ingredients_from_images(self, images: List[bytes]) -> List[str]:
        """
        이미지 바이트 배열 → 식재료 이름 리스트 (중복 제거, 정렬)
        - data URL 로 첨부, JSON 배열만 받는다
        - 배열을 못 찾으면 빈 리스트
        """
        if not images:
            log.info("Vision skipped (no images)")
            return []

        content: List[Dict[str, Any]] = [{"type": "text", "text": IMAGE_EXTRACT_PROMPT}]
        for b in images:
            content.append({
                "type": "image_url",
                "image_url": {"url": f"data:image/jpeg;base64,{_b64(b)}"},
            })

        text = await self._chat(content, temperature=0.1)
        start, end = text.find("["), text.rfind("]")
        if start == -1 or end <= start:
            log.warning("No JSON array found in vision response")
            return []
        try:
            items = json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            log.warning("Vision returned non-JSON content; ignoring")
            return []

        names = [str(i).strip() for i in items if isinstance(i, (str, int, float))]
        return sorted({n for n in names if n})

    async def classify_ingredient(self, name: str) -> str:
        # 닫힌 집합 밖의 답/오류 → "other"
        try:
            text = await self._chat(build_classify_prompt(name))
        except Exception as e:
            log.warning("classify failed for %r: %s", name, e)
            return DEFAULT_CATEGORY
        answer = (text or "").strip().lower().strip(".'\" ")
        return answer if answer in CATEGORIES else DEFAULT_CATEGORY

    async def check_content_safety(self, text: str) -> bool:
        # 정확히 "SAFE" 일 때만 통과
        try:
            answer = await self._chat(build_safety_prompt(text))
        except Exception as e:
            log.error("Safety check error: %s", e)
            return False
        return answer.strip() == "SAFE"


def build_gemini_client(config: GeminiConfig) -> GeminiClient | None:
    # 앱 스타트업용: 키가 없으면 None (생성 기능만 503)
    try:
        return GeminiClient(config)
    except GeminiNotReady as e:
        log.warning("Gemini disabled: %s", e)
        return None
