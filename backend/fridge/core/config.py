# 환경변수 로딩 (.env) + 로깅 초기화
from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import BaseModel
from pydantic_settings import BaseSettings


class GeminiConfig(BaseModel):
    # 모델 클라이언트 생성용 설정 묶음 (프로세스 시작 시 1회 생성해서 주입)
    url: str
    key: str = ""
    model_name: str = "gemini-2.5-flash"
    timeout: float = 60.0


class Settings(BaseSettings):
    MONGO_URI: str = "mongodb://localhost:27017"  # 필요 시 prod/staging로 분리
    MONGO_DB: str = "fridge"

    # Gemini (OpenAI 호환 엔드포인트)
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_TIMEOUT_SEC: float = 60.0

    UNSPLASH_ACCESS_KEY: Optional[str] = None

    # 생성 파이프라인
    RECIPE_BATCH_SIZE: int = 3
    CACHE_CANDIDATE_LIMIT: int = 200  # 캐시 후보 상한 (사용자별 최신순). 더 오래된 레시피는 캐시 대상 아님
    GENERATION_MIN_SECONDS: float = 2.0  # 체감 대기시간 하한 (UX 용)

    CORS_ALLOW_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    def gemini_config(self) -> GeminiConfig:
        return GeminiConfig(
            url=self.GEMINI_BASE_URL,
            key=(self.GEMINI_API_KEY or "").strip(),
            model_name=self.GEMINI_MODEL,
            timeout=self.GEMINI_TIMEOUT_SEC,
        )

    def cors_origins(self) -> List[str]:
        return [o.strip() for o in (self.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]


settings = Settings()


def init_logging() -> None:
    lvl = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=lvl, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    # 시끄러운 로거는 WARNING 이상만
    for noisy in ("httpx", "pymongo", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
