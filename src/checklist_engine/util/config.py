"""Engine configuration.

Loads all settings from .env with sensible defaults.
Nothing is required - the bundled standards are used unless overridden.
"""

import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

DATA_DIR = Path(__file__).resolve().parent.parent / "data"
DEFAULT_ASVS_PATH = DATA_DIR / "asvs-4.0.3-en.json"
DEFAULT_SPVS_PATH = DATA_DIR / "spvs-1.0.0-en.csv"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() == "true"


class Config:
    """Configuration for the checklist engine.
    
    Single source of truth for data locations, output and logging settings.
    """
    
    def __init__(self, env_file: Optional[Path] = None):
        """Load configuration from .env file.
        
        Looks in the current directory first, then the repository root.
        Variables already set in the environment win over the file.
        """
        if env_file is None:
            for candidate in (Path.cwd() / ".env", get_repo_root() / ".env"):
                if candidate.exists():
                    env_file = candidate
                    break
        
        if env_file is not None and Path(env_file).exists():
            load_dotenv(env_file)
        
        # ===== STANDARDS =====
        self.asvs_data_path = Path(os.getenv("ASVS_DATA_PATH") or DEFAULT_ASVS_PATH)
        self.spvs_data_path = Path(os.getenv("SPVS_DATA_PATH") or DEFAULT_SPVS_PATH)
        self.strict_category_names = _env_flag("STRICT_CATEGORY_NAMES")
        
        # ===== OUTPUT =====
        self.out_dir = Path(os.getenv("OUT_DIR", "out"))
        self.enable_excel = _env_flag("ENABLE_EXCEL")
        
        # ===== LOGGING =====
        self.log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
        log_file = os.getenv("LOG_FILE")
        self.log_file = Path(log_file) if log_file else None
    
    def to_dict(self) -> dict:
        """Convert config to dict for serialization."""
        return {
            'asvs_data_path': str(self.asvs_data_path),
            'spvs_data_path': str(self.spvs_data_path),
            'strict_category_names': self.strict_category_names,
            'out_dir': str(self.out_dir),
            'enable_excel': self.enable_excel,
            'log_level': self.log_level,
            'log_file': str(self.log_file) if self.log_file else None,
        }


def get_repo_root() -> Path:
    """Return the repository root directory."""
    return Path(__file__).resolve().parent.parent.parent.parent
