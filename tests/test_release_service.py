from datetime import datetime, timezone

from release_deployer.application.services.release_service import (
    ReleaseAllocator,
    allocate_release_dir,
)

NOW = datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    def now(self) -> datetime:
        return NOW


def test_allocate_returns_plain_name_when_free(tmp_path):
    assert allocate_release_dir(tmp_path, "prod", NOW) == tmp_path / "prod-20250101-0000"


def test_allocate_appends_suffix_on_collision(tmp_path):
    first = allocate_release_dir(tmp_path, "prod", NOW)
    first.mkdir()

    second = allocate_release_dir(tmp_path, "prod", NOW)

    assert second == tmp_path / "prod-20250101-0000-1"


def test_allocate_counter_increases_until_free(tmp_path):
    allocated = []
    for _ in range(4):
        path = allocate_release_dir(tmp_path, "prod", NOW)
        assert not path.exists()
        path.mkdir()
        allocated.append(path.name)

    assert allocated == [
        "prod-20250101-0000",
        "prod-20250101-0000-1",
        "prod-20250101-0000-2",
        "prod-20250101-0000-3",
    ]


def test_files_and_dangling_links_count_as_occupied(tmp_path):
    (tmp_path / "prod-20250101-0000").write_text("not a release")
    (tmp_path / "prod-20250101-0000-1").symlink_to(tmp_path / "gone")

    assert allocate_release_dir(tmp_path, "prod", NOW).name == "prod-20250101-0000-2"


def test_allocator_uses_clock(tmp_path):
    allocator = ReleaseAllocator(root_dir=tmp_path, prefix="staging", clock=FixedClock())

    assert allocator.allocate() == tmp_path / "staging-20250101-0000"
