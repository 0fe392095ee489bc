import json
from json import JSONDecodeError
from pathlib import Path
from typing import Any, Dict, Optional


def load_json_from_path(f: Path) -> Optional[Dict[str, Any]]:
    try:
        with f.open() as artifact_file:
            return json.load(artifact_file)
    except FileNotFoundError:
        return None
    except (JSONDecodeError, UnicodeDecodeError) as ex:
        raise ValueError(f"Artifact file {f} is corrupted: {ex}") from ex
