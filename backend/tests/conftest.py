import os
import sys

import pytest

# Add backend/ and tests/ to path
TESTS_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, os.path.dirname(TESTS_DIR))
sys.path.insert(0, TESTS_DIR)

from fakes import TEST_SETTINGS, make_docs_client, make_invoker  # noqa: E402
from docreview.services.llm_service import detection_profile, review_profile  # noqa: E402
from docreview.services.review_pipeline import ReviewPipeline  # noqa: E402


@pytest.fixture
def make_pipeline():
    """Build a ReviewPipeline around scripted model replies and a docs map."""
    def _make(detection_replies=None, review_replies=None,
              detection_error=None, review_error=None, docs=None):
        return ReviewPipeline(
            detection_model=make_invoker(
                detection_profile(TEST_SETTINGS), detection_replies, detection_error
            ),
            review_model=make_invoker(review_profile(TEST_SETTINGS), review_replies, review_error),
            docs_client=make_docs_client(docs),
        )
    return _make
