# vibeshare/shared/models.py

import uuid
from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Framework = Literal["react", "nextjs", "vue", "svelte", "angular", "vanilla", "other"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    # API and stored documents use camelCase keys (relativePath, mainFile, ...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FileRecord(CamelModel):
    filename: str
    filepath: str  # absolute on-disk location, always inside the project's storage root
    relative_path: str
    filetype: str = "unknown"
    size: int
    is_directory: bool = False


class Project(CamelModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    title: str
    description: str
    framework: Framework = "vanilla"
    tags: List[str] = Field(default_factory=list)
    is_public: bool = True
    owner: str
    files: List[FileRecord] = Field(default_factory=list)
    main_file: str = "index.html"
    project_structure: Dict[str, List[str]] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def find_file(self, relative_path: str) -> Optional[FileRecord]:
        for record in self.files:
            if record.relative_path == relative_path:
                return record
        return None

    def upsert_files(self, records: List[FileRecord]) -> None:
        """Merge records by relativePath: replace in place if present, else append."""
        positions = {f.relative_path: i for i, f in enumerate(self.files)}
        for record in records:
            index = positions.get(record.relative_path)
            if index is None:
                positions[record.relative_path] = len(self.files)
                self.files.append(record)
            else:
                self.files[index] = record

    def remove_file(self, relative_path: str) -> Optional[FileRecord]:
        record = self.find_file(relative_path)
        if record is not None:
            self.files.remove(record)
        return record


def _check_tags(tags: List[str]) -> List[str]:
    cleaned = [tag.strip() for tag in tags]
    for tag in cleaned:
        if len(tag) > 20:
            raise ValueError("Tag cannot exceed 20 characters")
    return cleaned


class ProjectCreate(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    framework: Framework = "vanilla"
    tags: List[str] = Field(default_factory=list)
    is_public: bool = True

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, tags: List[str]) -> List[str]:
        return _check_tags(tags)


class ProjectUpdate(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    framework: Optional[Framework] = None
    tags: Optional[List[str]] = None
    is_public: Optional[bool] = None

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, tags: Optional[List[str]]) -> Optional[List[str]]:
        if tags is None:
            return tags
        return _check_tags(tags)


class SaveFileRequest(BaseModel):
    content: str


class TerminalRequest(BaseModel):
    command: str
