import pytest

from src.models.growth.config import WHO_LMS_DIR
from src.models.growth.evaluate import GrowthEvaluator
from src.models.growth.who_lms import load_who_reference


@pytest.fixture(scope="session")
def reference():
    return load_who_reference(WHO_LMS_DIR)


@pytest.fixture
def evaluator(reference):
    return GrowthEvaluator(reference)
