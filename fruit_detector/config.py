from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from fruit_detector.core.nms import NmsPolicy


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    scorer: str = 'opencv'
    score_threshold: float = 0.6
    iou_threshold: float = 0.5
    nms_policy: NmsPolicy = NmsPolicy.SCORE_SORTED
    templates_manifest_path: str = 'templates/manifest.json'
    label_colors: dict[str, str] = Field(default_factory=lambda: {'Apple': '#00ff00', 'Banana': '#ff0000'})
    fallback_color: str = '#0000ff'
    render_scale: float = 2.0
    max_image_bytes: int = 8 * 1024 * 1024
    log_level: str = 'INFO'
    version: str = '1.0.0'


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
