# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Shared fixtures for integration tests.

Provides a representative mixed TypeScript/Python project and a service
wired to it with an offline token counter.
"""

import json
from pathlib import Path

import pytest

from codectx.config import Config
from codectx.context_formatter import ContextFormatter, TokenCounter
from codectx.service import ProjectContextService


class WordCounter(TokenCounter):
    """Offline token counter: one token per whitespace-separated word."""

    def count(self, text: str) -> int:
        return len(text.split())


@pytest.fixture
def sample_project(tmp_path: Path) -> Path:
    """Create a representative web project for integration testing.

    Creates:
    - TypeScript sources under src/ with cross-file imports
    - A Python helper script under scripts/
    - package.json, tsconfig.json and a lockfile at the root
    - .git and node_modules directories that must never be scanned

    Returns:
        Path to the project root directory
    """
    root = tmp_path / "sample_project"
    (root / "src" / "routes").mkdir(parents=True)
    (root / "src" / "services").mkdir(parents=True)
    (root / "scripts").mkdir()
    (root / ".git").mkdir()
    (root / "node_modules" / "express").mkdir(parents=True)

    (root / "package.json").write_text(
        json.dumps(
            {
                "name": "sample",
                "dependencies": {"express": "^4.18.0"},
                "devDependencies": {"eslint": "^8.0.0", "prettier": "^3.0.0"},
            }
        )
    )
    (root / "tsconfig.json").write_text('{"compilerOptions": {"strict": true}}')
    (root / ".eslintrc.json").write_text("{}")
    (root / "package-lock.json").write_text("{}")
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    (root / "node_modules" / "express" / "index.ts").write_text("export const express = 1;\n")

    (root / "src" / "server.ts").write_text(
        "import express from 'express';\n"
        "import { userRoutes } from './routes/users';\n"
        "\n"
        "export const app = express();\n"
        "app.use('/users', userRoutes);\n"
    )
    (root / "src" / "routes" / "users.ts").write_text(
        "import { Router } from 'express';\n"
        "import { findUser } from '../services/userService';\n"
        "\n"
        "export const userRoutes = Router();\n"
        "\n"
        "userRoutes.get('/:id', async (req, res) => {\n"
        "  const user = await findUser(req.params.id);\n"
        "  res.json(user);\n"
        "});\n"
    )
    (root / "src" / "services" / "userService.ts").write_text(
        "import { db } from './db';\n"
        "\n"
        "export async function findUser(id: string) {\n"
        "  return db.users.find(id);\n"
        "}\n"
        "\n"
        "export async function listUsers() {\n"
        "  return db.users.all();\n"
        "}\n"
    )
    (root / "scripts" / "seed.py").write_text(
        "import json\n"
        "\n"
        "\n"
        "def seed(path: str) -> None:\n"
        "    with open(path) as f:\n"
        "        json.load(f)\n"
    )
    return root


@pytest.fixture
def service(sample_project: Path, tmp_path: Path) -> ProjectContextService:
    """Service for sample_project with snapshots under tmp_path."""
    return ProjectContextService(
        config=Config(config_path=tmp_path / "missing.yml"),
        project_root=str(sample_project),
        formatter=ContextFormatter(token_counter=WordCounter()),
        data_root=tmp_path / "data",
    )
