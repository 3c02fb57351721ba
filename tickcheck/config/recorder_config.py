#!filepath: tickcheck/config/recorder_config.py
from pydantic import BaseModel, Field


class RecorderConfig(BaseModel):
    radius: int = Field(16, ge=1)
    padding: int = Field(1, ge=0)
    tests_dir: str = "tests_world"
