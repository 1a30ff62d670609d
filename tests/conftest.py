"""Shared fixtures: in-memory SQLite schema, fake identity provider, seeded accounts."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_URL"] = "https://example.supabase.co"
os.environ["SUPABASE_ANON_KEY"] = "anon-key"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "service-role-key"

from datetime import date  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from challenge_admin.database import SessionLocal, engine, get_db  # noqa: E402
from challenge_admin.identity import AuthSession, IdentityError, get_identity_provider  # noqa: E402
from challenge_admin.main import app  # noqa: E402
from challenge_admin.models import (  # noqa: E402
    Base,
    Cohort,
    MealOption,
    MealProgram,
    Profile,
    Role,
    new_id,
)


class FakeIdentityProvider:
    """In-memory stand-in for the Supabase Auth client."""

    def __init__(self):
        self.accounts: dict[str, tuple[str, str]] = {}  # email -> (password, user_id)
        self.tokens: dict[str, str] = {}  # token -> user_id
        self.created: list[tuple[str, str]] = []
        self.deleted: list[str] = []
        self.signed_out: list[str] = []

    def register(self, email: str, password: str, user_id: str) -> None:
        self.accounts[email] = (password, user_id)

    def issue_token(self, user_id: str) -> str:
        token = f"token-{user_id}"
        self.tokens[token] = user_id
        return token

    def sign_in(self, email: str, password: str) -> AuthSession:
        entry = self.accounts.get(email)
        if entry is None or entry[0] != password:
            raise IdentityError("Invalid email or password")
        return AuthSession(
            access_token=self.issue_token(entry[1]),
            refresh_token=None,
            user_id=entry[1],
            expires_at=0.0,
        )

    def get_user_id(self, token: str) -> str | None:
        return self.tokens.get(token)

    def sign_out(self, token: str) -> None:
        self.signed_out.append(token)
        self.tokens.pop(token, None)

    def create_user(self, email: str, password: str) -> str:
        user_id = new_id()
        self.register(email, password, user_id)
        self.created.append((email, password))
        return user_id

    def delete_user(self, user_id: str) -> None:
        self.deleted.append(user_id)


@pytest.fixture
def db_session():
    Base.metadata.create_all(engine)
    session = SessionLocal()
    yield session
    session.rollback()
    session.close()
    Base.metadata.drop_all(engine)


@pytest.fixture
def identity():
    return FakeIdentityProvider()


@pytest.fixture
def make_profile(db_session, identity):
    def _make(email: str, role: Role = Role.USER, full_name: str | None = None) -> Profile:
        profile = Profile(id=new_id(), email=email, full_name=full_name, role=role)
        db_session.add(profile)
        db_session.flush()
        identity.register(email, "secret", profile.id)
        return profile

    return _make


@pytest.fixture
def admin(make_profile):
    return make_profile("admin@example.com", Role.SUPER_ADMIN, "Ada Admin")


@pytest.fixture
def viewer(make_profile):
    return make_profile("viewer@example.com", Role.VIEWER, "Vic Viewer")


@pytest.fixture
def member(make_profile):
    return make_profile("member@example.com", Role.USER, "Mo Member")


@pytest.fixture
def make_cohort(db_session):
    def _make(name: str = "Spring Challenge", start: date = date(2025, 1, 6), weeks: int = 4, **kwargs) -> Cohort:
        cohort = Cohort(name=name, start_date=start, duration_weeks=weeks, **kwargs)
        db_session.add(cohort)
        db_session.flush()
        return cohort

    return _make


@pytest.fixture
def program(db_session):
    """A two-week program with lunch and dinner configured on a few days."""
    program = MealProgram(name="Clean Eating", description="Balanced meals")
    db_session.add(program)
    db_session.flush()
    db_session.add_all([
        MealOption(
            meal_program_id=program.id, challenge_week=1, challenge_day=1, meal_type="lunch",
            option_a_name="Chicken Salad", option_b_name="Salmon Bowl",
        ),
        MealOption(
            meal_program_id=program.id, challenge_week=1, challenge_day=1, meal_type="dinner",
            option_a_name="Beef Stir Fry", option_b_name="Tofu Curry",
        ),
        MealOption(
            meal_program_id=program.id, challenge_week=1, challenge_day=3, meal_type="lunch",
            option_a_name="Turkey Wrap", option_b_name="Lentil Soup",
            option_a_description="Whole wheat wrap",
        ),
        MealOption(
            meal_program_id=program.id, challenge_week=2, challenge_day=1, meal_type="lunch",
            option_a_name="Greek Bowl", option_b_name="Poke Bowl",
        ),
    ])
    db_session.flush()
    return program


@pytest.fixture
def client(db_session, identity):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_provider] = lambda: identity
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(identity):
    def _headers(profile: Profile) -> dict:
        return {"Authorization": f"Bearer {identity.issue_token(profile.id)}"}

    return _headers
