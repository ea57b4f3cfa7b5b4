import pytest

from helpers import FakeSevenZip

from homework_pipeline.config.models import ExtractionSettings, PipelineConfig
from homework_pipeline.processing.extractor import ArchiveExtractor
from homework_pipeline.processing.filetypes import FileClassifier
from homework_pipeline.processing.scanner import TreeScanner


@pytest.fixture
def fake_7z(monkeypatch) -> FakeSevenZip:
    fake = FakeSevenZip()
    monkeypatch.setattr("homework_pipeline.processing.extractor.subprocess.run", fake)
    return fake


@pytest.fixture
def settings() -> ExtractionSettings:
    return ExtractionSettings()


@pytest.fixture
def classifier(settings) -> FileClassifier:
    return FileClassifier.from_settings(settings)


@pytest.fixture
def extractor(settings, classifier) -> ArchiveExtractor:
    return ArchiveExtractor(settings, classifier)


@pytest.fixture
def scanner(extractor) -> TreeScanner:
    return TreeScanner(extractor)


@pytest.fixture
def config() -> PipelineConfig:
    return PipelineConfig()
