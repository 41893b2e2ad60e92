from __future__ import annotations
import os
import yaml
from pathlib import Path
from typing import List
from pydantic import BaseModel, Field

DEFAULT_SETTINGS_PATH = Path(__file__).resolve().parents[1] / "config" / "settings.yaml"

class AppConfig(BaseModel):
    name: str
    environment: str
    log_level: str = "INFO"

class DemoUser(BaseModel):
    role: str
    name: str
    email: str
    username: str
    password: str
    phone: str = ""
    institution_name: str = ""
    city: str = ""
    state: str = ""

class AuthConfig(BaseModel):
    demo_users: List[DemoUser] = Field(default_factory=list)

class DBConfig(BaseModel):
    url: str

class StudentsConfig(BaseModel):
    page_sizes: List[int] = Field(default_factory=lambda: [25, 50, 100])
    default_page_size: int = 25
    executive_limit: int = 500

class UploadConfig(BaseModel):
    batch_size: int = 100
    max_errors_shown: int = 10
    partial_threshold: float = 0.1

class MessagingConfig(BaseModel):
    channels: List[str] = Field(default_factory=lambda: ["email", "whatsapp"])

class Settings(BaseModel):
    app: AppConfig
    auth: AuthConfig = Field(default_factory=AuthConfig)
    db: DBConfig
    students: StudentsConfig = Field(default_factory=StudentsConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)
    messaging: MessagingConfig = Field(default_factory=MessagingConfig)

def load_settings(path: str | Path | None = None) -> Settings:
    if path is None:
        path = os.getenv("EDUCRM_SETTINGS") or DEFAULT_SETTINGS_PATH
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return Settings(
        app=AppConfig(**data["app"]),
        auth=AuthConfig(**(data.get("auth") or {})),
        db=DBConfig(**data["db"]),
        students=StudentsConfig(**(data.get("students") or {})),
        upload=UploadConfig(**(data.get("upload") or {})),
        messaging=MessagingConfig(**(data.get("messaging") or {})),
    )
