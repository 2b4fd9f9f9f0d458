"""
Pytest Configuration and Fixtures.
Shared test fixtures for all test modules.
"""

from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.api.main import create_app
from src.core.config import AdjudicationSettings, reset_settings
from src.core.enums import (
    CardStatus,
    CoverageTarget,
    MemberStatus,
    PolicyStatus,
    ProviderNetworkStatus,
)
from src.db.connection import create_engine_for_url, init_db
from src.services.coverage_resolver import BenefitConfiguration, CoverageRule
from src.services.eligibility import EligibilityContext, reset_eligibility_engine
from src.services.snapshot_source import InMemorySnapshotSource
from src.services.snapshots import (
    EmployerSnapshot,
    MemberSnapshot,
    PolicySnapshot,
    ProviderSnapshot,
)

# Fixed reference date; rules never read the clock
AS_OF = date(2024, 6, 1)


@pytest.fixture(autouse=True)
def reset_singletons(monkeypatch):
    """Each test sees fresh settings and a fresh engine."""
    monkeypatch.setenv("ADJUDICATION_ENVIRONMENT", "testing")
    reset_settings()
    reset_eligibility_engine()
    yield
    reset_settings()
    reset_eligibility_engine()


@pytest.fixture
def benefit_config():
    """Configuration with a dental category rule and a few service rules."""
    return BenefitConfiguration(
        configuration_id="BC-GOLD",
        name="Gold",
        default_coverage_percent=90,
        rules=(
            CoverageRule("R-DEN", CoverageTarget.CATEGORY, "DEN", coverage_percent=50),
            CoverageRule(
                "R-OPD",
                CoverageTarget.CATEGORY,
                "OPD",
                coverage_percent=80,
                amount_limit=Decimal("1000.00"),
                count_limit=5,
            ),
            CoverageRule(
                "R-MRI",
                CoverageTarget.SERVICE,
                "RAD-MRI",
                coverage_percent=70,
                requires_pre_approval=True,
            ),
            CoverageRule(
                "R-MAT",
                CoverageTarget.CATEGORY,
                "MAT",
                coverage_percent=100,
                waiting_period_days=270,
            ),
        ),
    )


@pytest.fixture
def active_policy(benefit_config):
    return PolicySnapshot(
        policy_id="P001",
        policy_number="P001",
        status=PolicyStatus.ACTIVE,
        start_date=date(2024, 1, 1),
        end_date=date(2024, 12, 31),
        benefit_configuration=benefit_config,
        product_name="Gold Group Health",
        employer_id="E001",
    )


@pytest.fixture
def active_member():
    return MemberSnapshot(
        member_id="M100",
        full_name="Sara Ahmed",
        status=MemberStatus.ACTIVE,
        card_number="CARD-100",
        card_status=CardStatus.ACTIVE,
        card_expiry_date=date(2025, 12, 31),
        enrollment_date=date(2024, 3, 1),
        policy_id="P001",
        employer_id="E001",
    )


@pytest.fixture
def employer():
    return EmployerSnapshot(employer_id="E001", name="Acme Trading", active=True)


@pytest.fixture
def provider():
    return ProviderSnapshot(
        provider_id="PR1",
        name="City Clinic",
        active=True,
        network_status=ProviderNetworkStatus.IN_NETWORK,
    )


@pytest.fixture
def make_context(active_member, active_policy, employer):
    """Factory for eligibility contexts; keyword overrides replace defaults."""

    def _make(**overrides) -> EligibilityContext:
        values = {
            "member_id": active_member.member_id,
            "service_code": "OPD-001",
            "service_category": "OPD",
            "service_date": date(2024, 5, 20),
            "member": active_member,
            "policy": active_policy,
            "employer": employer,
            "requested_amount": Decimal("200.00"),
            "as_of": AS_OF,
        }
        values.update(overrides)
        return EligibilityContext(**values)

    return _make


@pytest.fixture
def snapshot_source(active_member, active_policy, employer, provider):
    return InMemorySnapshotSource(
        members=[active_member],
        policies=[active_policy],
        employers=[employer],
        providers=[provider],
        service_categories={
            "OPD-001": "OPD",
            "OPD-002": "OPD",
            "DEN-001": "DEN",
            "RAD-MRI": "RAD",
            "MAT-001": "MAT",
        },
    )


@pytest.fixture
def current_snapshot_source(active_member, active_policy, employer, provider):
    """Source whose policy and card are valid around today, for API calls that use the real clock."""
    today = date.today()
    policy = replace(
        active_policy,
        start_date=today - timedelta(days=180),
        end_date=today + timedelta(days=180),
    )
    member = replace(
        active_member,
        enrollment_date=today - timedelta(days=120),
        card_expiry_date=today + timedelta(days=365),
    )
    return InMemorySnapshotSource(
        members=[member],
        policies=[policy],
        employers=[employer],
        providers=[provider],
        service_categories={"OPD-001": "OPD", "DEN-001": "DEN", "RAD-MRI": "RAD"},
    )


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """File-backed SQLite engine with all tables created."""
    engine = create_engine_for_url(
        f"sqlite+aiosqlite:///{tmp_path / 'adjudication.db'}",
        testing=True,
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


# Configure pytest markers
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "api: mark test as an API test"
    )


@pytest.fixture
def client(tmp_path, current_snapshot_source):
    """API client backed by a fresh SQLite file; lifespan creates the tables."""
    settings = AdjudicationSettings(
        ENVIRONMENT="testing",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
    )
    app = create_app(settings=settings, snapshot_source=current_snapshot_source)
    with TestClient(app) as test_client:
        yield test_client
