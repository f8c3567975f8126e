import pytest

from imgrecipe.pipeline.status_tracker import ImageStatusTracker


@pytest.fixture
def tracker(temp_dir):
    db_path = temp_dir / "status.db"
    t = ImageStatusTracker(db_path)
    yield t
    t.close()
