import pytest

from helpers import make_csv
from trajectory_forecast.analyzer import TrajectoryAnalyzer
from trajectory_forecast.mock_data import MOCK_AS_OF, mock_csv_text


@pytest.fixture
def sample_csv():
    return make_csv([
        ('2025-01-30T10:00:00Z', '01/20/2025', '$1,000.00', 'FUNDED'),
        ('2025-01-30T10:00:00Z', '02/10/2025', '$500.00', 'APPROVED'),
        ('2025-02-01T10:00:00Z', '02/10/2025', '$700.00', 'APPROVED'),
        ('2025-02-01T10:00:00Z', '03/05/2025', '$300.00', 'CONDITION_FULFILLMENT'),
        ('2025-02-01T10:00:00Z', '2025-03-05', '$200.00', 'APPROVED'),
    ])


@pytest.fixture(scope='session')
def mock_analyzer():
    """Analyzer loaded with deterministic mock data, Jan-Aug closed."""
    return TrajectoryAnalyzer(as_of=MOCK_AS_OF).load_data(mock_csv_text(end=MOCK_AS_OF))
