from pathlib import Path

_LANGUAGE_ALIASES = {
    "c#": "csharp",
    "csharp": "csharp",
    "cpp": "cpp",
    "c++": "cpp",
    "cs": "csharp",
    "css": "css",
    "go": "go",
    "golang": "go",
    "html": "html",
    "java": "java",
    "javascript": "javascript",
    "js": "javascript",
    "kotlin": "kotlin",
    "kt": "kotlin",
    "lua": "lua",
    "php": "php",
    "python": "python",
    "py": "python",
    "rb": "ruby",
    "ruby": "ruby",
    "rs": "rust",
    "rust": "rust",
    "sh": "bash",
    "shell": "bash",
    "bash": "bash",
    "sql": "sql",
    "swift": "swift",
    "toml": "toml",
    "ts": "typescript",
    "tsx": "tsx",
    "typescript": "typescript",
    "yaml": "yaml",
    "yml": "yaml",
    "c": "c",
}

_EXTENSION_LANGUAGE_MAP = {
    ".c": "c",
    ".cc": "cpp",
    ".cpp": "cpp",
    ".cs": "csharp",
    ".cxx": "cpp",
    ".go": "go",
    ".h": "c",
    ".hh": "cpp",
    ".hpp": "cpp",
    ".htm": "html",
    ".html": "html",
    ".java": "java",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".kt": "kotlin",
    ".lua": "lua",
    ".php": "php",
    ".py": "python",
    ".rb": "ruby",
    ".rs": "rust",
    ".sh": "bash",
    ".sql": "sql",
    ".swift": "swift",
    ".scss": "css",
    ".css": "css",
    ".toml": "toml",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".yaml": "yaml",
    ".yml": "yaml",
}

# Languages without a single-line comment (css, html) map to None.
_LINE_COMMENT_TOKENS: dict[str, str | None] = {
    "bash": "#",
    "c": "//",
    "cpp": "//",
    "csharp": "//",
    "css": None,
    "go": "//",
    "html": None,
    "java": "//",
    "javascript": "//",
    "kotlin": "//",
    "lua": "--",
    "php": "//",
    "python": "#",
    "ruby": "#",
    "rust": "//",
    "sql": "--",
    "swift": "//",
    "toml": "#",
    "tsx": "//",
    "typescript": "//",
    "yaml": "#",
}

_SUPPORTED_LANGUAGES = set(_LINE_COMMENT_TOKENS)


def normalize_language(language: str) -> str:
    normalized = language.strip().lower()
    resolved = _LANGUAGE_ALIASES.get(normalized, normalized)
    if resolved not in _SUPPORTED_LANGUAGES:
        raise ValueError(f"Unsupported language '{language}'. Supported: {sorted(_SUPPORTED_LANGUAGES)}")
    return resolved


def detect_language_from_path(file_path: Path) -> str:
    suffix = file_path.suffix.lower()
    if suffix in _EXTENSION_LANGUAGE_MAP:
        return _EXTENSION_LANGUAGE_MAP[suffix]
    raise ValueError(f"Unsupported file extension: {suffix}")


def resolve_language(language: str | None, file_path: Path | None) -> str | None:
    """Language id for an explicit name or a file path; None when the extension is unknown."""
    if language:
        return normalize_language(language)
    if file_path:
        return _EXTENSION_LANGUAGE_MAP.get(file_path.suffix.lower())
    return None


def line_comment_token(language: str | None) -> str | None:
    if language is None:
        return None
    return _LINE_COMMENT_TOKENS.get(language)
