import pytest

from packsync.models import (
    LoaderName,
    LoaderSelection,
    LoaderVersion,
    NeedsSelection,
    Resolved,
)
from packsync.models.config import LoaderConfig
from packsync.services import LoaderVersionResolver
from packsync.exceptions import (
    IncompatibleVersionError,
    NoCompatibleVersionError,
    UnknownLoaderError,
)


class FakeCatalog:
    def __init__(self, versions):
        self.versions = versions
        self.requested = []

    async def list_versions(self, loader):
        self.requested.append(loader)
        return list(self.versions)


FORGE_VERSIONS = [
    LoaderVersion("47.1.0", ("1.20.1",), release_time="2023-07-01T00:00:00+00:00"),
    LoaderVersion(
        "47.2.0", ("1.20.1",), recommended=True, release_time="2023-09-01T00:00:00+00:00"
    ),
    LoaderVersion("47.10.0", ("1.20.1",), release_time="2024-01-01T00:00:00+00:00"),
    LoaderVersion("43.3.0", ("1.19.2",), release_time="2023-05-01T00:00:00+00:00"),
    LoaderVersion("14.23.5.2860", ("1.12.2",), sha256="abc"),
]


@pytest.mark.asyncio
async def test_several_candidates_need_selection_newest_first():
    resolver = LoaderVersionResolver(FakeCatalog(FORGE_VERSIONS))

    result = await resolver.resolve("1.20.1", "forge")

    assert isinstance(result, NeedsSelection)
    assert result.loader == LoaderName.FORGE
    assert [v.version for v in result.candidates] == ["47.10.0", "47.2.0", "47.1.0"]


@pytest.mark.asyncio
async def test_prompt_behaves_like_no_version():
    resolver = LoaderVersionResolver(FakeCatalog(FORGE_VERSIONS))

    result = await resolver.resolve("1.20.1", "forge", "prompt")

    assert isinstance(result, NeedsSelection)
    assert len(result.candidates) == 3


@pytest.mark.asyncio
async def test_single_candidate_is_resolved():
    resolver = LoaderVersionResolver(FakeCatalog(FORGE_VERSIONS))

    result = await resolver.resolve("1.12.2", "Forge")

    assert isinstance(result, Resolved)
    assert result.artifact.version == "14.23.5.2860"
    assert result.artifact.sha256 == "abc"
    assert result.artifact.loader_id == "forge-14.23.5.2860"
    assert result.artifact.installer_url == (
        "https://maven.minecraftforge.net/net/minecraftforge/forge/"
        "1.12.2-14.23.5.2860/forge-1.12.2-14.23.5.2860-installer.jar"
    )


@pytest.mark.asyncio
async def test_requested_compatible_version_is_resolved():
    resolver = LoaderVersionResolver(FakeCatalog(FORGE_VERSIONS))

    result = await resolver.resolve("1.20.1", LoaderName.FORGE, "47.2.0")

    assert isinstance(result, Resolved)
    assert result.artifact.game_version == "1.20.1"
    assert result.artifact.installer_url.endswith(
        "/forge/1.20.1-47.2.0/forge-1.20.1-47.2.0-installer.jar"
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("version", ["43.3.0", "99.0.0"])
async def test_requested_incompatible_or_unknown_version(version):
    resolver = LoaderVersionResolver(FakeCatalog(FORGE_VERSIONS))

    with pytest.raises(IncompatibleVersionError) as exc_info:
        await resolver.resolve("1.20.1", "forge", version)

    assert exc_info.value.code == "E802"
    assert exc_info.value.context["version"] == version


@pytest.mark.asyncio
async def test_no_compatible_version():
    resolver = LoaderVersionResolver(FakeCatalog(FORGE_VERSIONS))

    with pytest.raises(NoCompatibleVersionError):
        await resolver.resolve("1.7.10", "forge")


@pytest.mark.asyncio
async def test_unknown_loader_name():
    catalog = FakeCatalog(FORGE_VERSIONS)
    resolver = LoaderVersionResolver(catalog)

    with pytest.raises(UnknownLoaderError):
        await resolver.resolve("1.20.1", "fabric")
    assert catalog.requested == []


@pytest.mark.asyncio
async def test_neoforge_installer_url_uses_configured_maven():
    catalog = FakeCatalog([LoaderVersion("20.4.80-beta", ("1.20.4",))])
    config = LoaderConfig(neoforge_maven_url="https://mirror.example/maven/")
    resolver = LoaderVersionResolver(catalog, config)

    result = await resolver.resolve("1.20.4", "neoforge")

    assert catalog.requested == [LoaderName.NEOFORGE]
    assert result.artifact.installer_url == (
        "https://mirror.example/maven/net/neoforged/neoforge/20.4.80-beta/"
        "neoforge-20.4.80-beta-installer.jar"
    )


def test_select_builds_artifact_for_caller_choice():
    resolver = LoaderVersionResolver(FakeCatalog([]))

    artifact = resolver.select("1.20.1", "forge", FORGE_VERSIONS[1])

    assert artifact.loader_id == "forge-47.2.0"
    assert str(FORGE_VERSIONS[1]) == "47.2.0 *"


def test_forge_version_with_game_prefix_is_not_doubled():
    resolver = LoaderVersionResolver(FakeCatalog([]))

    url = resolver.installer_url(LoaderName.FORGE, "1.20.1", "1.20.1-47.2.0")

    assert url.endswith("/forge/1.20.1-47.2.0/forge-1.20.1-47.2.0-installer.jar")


@pytest.mark.parametrize(
    "loader_id, loader, version",
    [
        ("forge-47.2.0", LoaderName.FORGE, "47.2.0"),
        ("neoforge-20.4.80-beta", LoaderName.NEOFORGE, "20.4.80-beta"),
        ("forge", LoaderName.FORGE, None),
        ("forge-", LoaderName.FORGE, None),
    ],
)
def test_loader_selection_parse(loader_id, loader, version):
    selection = LoaderSelection.parse("1.20.1", loader_id)

    assert selection.loader == loader
    assert selection.version == version
    assert selection.needs_prompt is (version is None)


def test_loader_selection_prompt():
    assert LoaderSelection.parse("1.20.1", "forge-prompt").needs_prompt


def test_loader_selection_rejects_unknown_loader():
    with pytest.raises(UnknownLoaderError):
        LoaderSelection.parse("1.20.1", "quilt-0.20.0")
