"""API dependencies."""
import random

from fastapi import HTTPException

from ..config import Settings, get_settings
from ..core.analyzer import get_analyzer, PuzzleAnalyzer
from ..core.generator import LevelGenerator
from ..models.level import Level
from ..models.schemas import LevelDefinition


def get_app_settings() -> Settings:
    """Dependency for application settings."""
    return get_settings()


def get_puzzle_analyzer() -> PuzzleAnalyzer:
    """Dependency for puzzle analyzer."""
    return get_analyzer()


def get_level_generator() -> LevelGenerator:
    """Dependency for level generator, configured from settings."""
    settings = get_settings()
    return LevelGenerator(
        rng=random.Random(),
        attempt_multiplier=max(1, settings.generator_attempt_multiplier),
    )


def load_level(definition: LevelDefinition) -> Level:
    """Build a Level from a request body, rejecting inconsistent boards with 400."""
    try:
        return definition.to_level()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid level: {str(e)}")
