from __future__ import annotations

import re
from pathlib import Path

from .log import logger
from .patterns import Category

# Last `})` / `});` in the file closes the z.object({...}) call.
_CLOSING_RE = re.compile(r"\}\s*\)\s*;?\s*$", re.MULTILINE)


def zod_type_for(category: Category) -> str:
    return "z.string().min(1)" if category is Category.secret else "z.string().optional()"


def build_minimal_schema(var_name: str, category: Category) -> str:
    return (
        "import { z } from 'zod';\n"
        "\n"
        "export const envSchema = z.object({\n"
        f"  {var_name}: {zod_type_for(category)},\n"
        "});\n"
        "\n"
        "export type Env = z.infer<typeof envSchema>;\n"
    )


def add_to_env_schema(schema_path: Path, var_name: str, category: Category) -> bool:
    """Register ``var_name`` in a Zod env schema file.

    Creates a minimal schema when the file does not exist. Returns False when
    the name already appears in the file.
    """
    if not schema_path.exists():
        schema_path.parent.mkdir(parents=True, exist_ok=True)
        schema_path.write_text(build_minimal_schema(var_name, category), encoding="utf-8")
        logger.info("Created env schema {} with {}", schema_path, var_name)
        return True

    content = schema_path.read_text(encoding="utf-8")
    if var_name in content:
        return False

    zod_type = zod_type_for(category)
    matches = list(_CLOSING_RE.finditer(content))
    if not matches:
        # No recognisable z.object({...}); leave a hint instead of guessing.
        hint = f"\n// TODO: Add {var_name} to your schema\n// {var_name}: {zod_type}\n"
        schema_path.write_text(content + hint, encoding="utf-8")
        logger.warning("No closing z.object in {}; appended a hint for {}", schema_path, var_name)
        return True

    index = matches[-1].start()
    updated = content[:index] + f"  {var_name}: {zod_type},\n" + content[index:]
    schema_path.write_text(updated, encoding="utf-8")
    logger.info("Added {} to env schema {}", var_name, schema_path)
    return True
