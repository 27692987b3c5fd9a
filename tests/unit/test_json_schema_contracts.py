"""
Tests for JSON Schema Contract Validators

Комплексное тестирование JSON Schema валидаторов:
- Валидность самих схем
- Валидация правильных данных
- Детекция нарушений required полей
- Детекция нарушений типов и constraints (minimum/enum/pattern)
- Интеграция с Pydantic моделями
"""

import json
from datetime import datetime, timezone

import pytest
from jsonschema import ValidationError

from src.core.contracts import (
    EscrowValidator,
    SchemaLoader,
    TokenReserveStateValidator,
    validate_escrow,
    validate_token_reserve_state,
)
from src.core.domain import TokenReserveState
from src.escrow import apply_release, create_escrow


# =============================================================================
# FIXTURES - VALID DATA SAMPLES
# =============================================================================


@pytest.fixture
def valid_token_reserve_state():
    """Валидный снапшот резервов (big int как строки и числа)."""
    return {
        "virtual_eth_reserve": "1000000000000000000",
        "virtual_token_reserve": "1000000000000000000000000",
        "real_eth_reserve": 500000000,
        "real_token_reserve": "800000000000000000000000",
        "total_eth_traded": "0",
        "graduated": False,
    }


@pytest.fixture
def valid_escrow():
    """Валидная escrow запись из хранилища."""
    return {
        "escrow_id": "esc-1",
        "total_amount": "600",
        "released_amount": 100,
        "status": "ACTIVE",
        "milestones": [
            {
                "milestone_index": 0,
                "amount": "100",
                "released": True,
                "released_at": "2025-03-01T10:00:00Z",
                "title": "MVP",
            },
            {"milestone_index": 1, "amount": 500, "released": False},
        ],
        "version": 3,
        "created_by": "0xabc",
    }


# =============================================================================
# TESTS - SCHEMA LOADING
# =============================================================================


def test_schema_loader_loads_all_schemas():
    """Проверка загрузки всех схем."""
    loader = SchemaLoader()

    reserve_schema = loader.load_schema("token_reserve_state")
    escrow_schema = loader.load_schema("escrow")

    assert reserve_schema["title"] == "TokenReserveState"
    assert escrow_schema["title"] == "Escrow"


def test_schema_loader_caches_schemas():
    """Проверка кэширования схем."""
    loader = SchemaLoader()

    schema1 = loader.load_schema("escrow")
    schema2 = loader.load_schema("escrow")

    # Должен вернуть тот же объект (кэш)
    assert schema1 is schema2


def test_schema_loader_raises_on_missing_schema():
    """Проверка ошибки при отсутствующей схеме."""
    loader = SchemaLoader()

    with pytest.raises(FileNotFoundError):
        loader.load_schema("non_existent_schema")


def test_schema_loader_raises_on_missing_directory(tmp_path):
    with pytest.raises(RuntimeError, match="Schema directory not found"):
        SchemaLoader(tmp_path / "missing")


def test_schema_loader_rejects_invalid_schema(tmp_path):
    """Meta-validation отклоняет сломанную схему."""
    (tmp_path / "broken.json").write_text(json.dumps({"type": 42}), encoding="utf-8")
    loader = SchemaLoader(tmp_path)

    assert loader.schema_dir == tmp_path
    with pytest.raises(ValueError, match="Invalid JSON Schema"):
        loader.load_schema("broken")


# =============================================================================
# TESTS - TOKEN RESERVE STATE VALIDATION
# =============================================================================


def test_token_reserve_state_accepts_valid_data(valid_token_reserve_state):
    validator = TokenReserveStateValidator()
    validator.validate(valid_token_reserve_state)  # Не должно выбросить исключение
    assert validator.is_valid(valid_token_reserve_state)


def test_token_reserve_state_validate_function(valid_token_reserve_state):
    validate_token_reserve_state(valid_token_reserve_state)


def test_token_reserve_state_rejects_missing_required_field(valid_token_reserve_state):
    data = valid_token_reserve_state.copy()
    del data["real_token_reserve"]

    with pytest.raises(ValidationError) as exc_info:
        validate_token_reserve_state(data)
    assert "'real_token_reserve' is a required property" in str(exc_info.value)


@pytest.mark.parametrize(
    "field,value",
    [
        ("real_eth_reserve", -1),
        ("real_eth_reserve", "-1"),
        ("real_eth_reserve", "1.5"),
        ("real_eth_reserve", 1.5),
        ("virtual_eth_reserve", 0),
        ("virtual_eth_reserve", "0"),
        ("graduated", "false"),
    ],
)
def test_token_reserve_state_rejects_bad_values(valid_token_reserve_state, field, value):
    data = {**valid_token_reserve_state, field: value}
    assert not TokenReserveStateValidator().is_valid(data)


def test_token_reserve_state_rejects_unknown_field(valid_token_reserve_state):
    data = {**valid_token_reserve_state, "price": 1}

    with pytest.raises(ValidationError):
        validate_token_reserve_state(data)


def test_token_reserve_state_pydantic_dump_is_valid():
    """model_dump(mode='json') модели проходит схему."""
    state = TokenReserveState(real_eth_reserve=10**17, real_token_reserve=10**23)
    validate_token_reserve_state(state.model_dump(mode="json"))


def test_token_reserve_state_schema_data_loads_into_model(valid_token_reserve_state):
    state = TokenReserveState.model_validate(valid_token_reserve_state)
    assert state.real_eth_reserve == 500_000_000


# =============================================================================
# TESTS - ESCROW VALIDATION
# =============================================================================


def test_escrow_accepts_valid_data(valid_escrow):
    validator = EscrowValidator()
    validator.validate(valid_escrow)
    assert validator.is_valid(valid_escrow)


def test_escrow_rejects_missing_required_field(valid_escrow):
    data = valid_escrow.copy()
    del data["status"]

    with pytest.raises(ValidationError) as exc_info:
        validate_escrow(data)
    assert "'status' is a required property" in str(exc_info.value)


def test_escrow_rejects_unknown_status(valid_escrow):
    data = {**valid_escrow, "status": "PAUSED"}

    with pytest.raises(ValidationError) as exc_info:
        validate_escrow(data)
    assert "is not one of" in str(exc_info.value)


def test_escrow_rejects_bad_milestone(valid_escrow):
    data = {
        **valid_escrow,
        "milestones": [{"milestone_index": -1, "amount": "100", "released": False}],
    }
    errors = list(EscrowValidator().iter_errors(data))
    assert len(errors) == 1


def test_escrow_rejects_milestone_without_released(valid_escrow):
    data = {**valid_escrow, "milestones": [{"milestone_index": 0, "amount": 100}]}
    assert not EscrowValidator().is_valid(data)


def test_escrow_rejects_malformed_timestamps(valid_escrow):
    """date-time форматы проверяются FORMAT_CHECKER"""
    milestone = {**valid_escrow["milestones"][0], "released_at": "not-a-date"}
    bad_milestone = {**valid_escrow, "milestones": [milestone]}
    bad_completed_at = {**valid_escrow, "completed_at": "2025-13-45"}

    with pytest.raises(ValidationError, match="date-time"):
        validate_escrow(bad_milestone)
    assert not EscrowValidator().is_valid(bad_completed_at)


def test_escrow_pydantic_dump_is_valid():
    escrow = create_escrow("esc-2", 300, [100, 200], titles=["a", "b"])
    released = apply_release(escrow, 0, datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc))

    validate_escrow(escrow.model_dump(mode="json"))
    validate_escrow(released.model_dump(mode="json"))
