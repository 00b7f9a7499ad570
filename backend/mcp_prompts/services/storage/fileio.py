"""Small aiofiles helpers shared by the file backend and JSON backups."""
import json
import uuid
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os


async def atomic_write_json(path: Path, data: Any) -> None:
    """Pretty-print `data` to `path` via a temp file and os.replace.

    Readers see either the old file or the new one, never a partial write.
    """
    tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex[:8]}.tmp")
    text = json.dumps(data, indent=2, ensure_ascii=False)
    try:
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(text)
        await aiofiles.os.replace(tmp_path, path)
    except BaseException:
        if await aiofiles.os.path.exists(tmp_path):
            await aiofiles.os.remove(tmp_path)
        raise


async def read_json(path: Path) -> Any:
    async with aiofiles.open(path, "r", encoding="utf-8") as f:
        return json.loads(await f.read())


async def list_json_files(directory: Path) -> list[Path]:
    """*.json files in `directory`, sorted by name. Temp files are skipped."""
    names = await aiofiles.os.listdir(directory)
    return [
        directory / name
        for name in sorted(names)
        if name.endswith(".json") and not name.startswith(".")
    ]
