"""Tests for failure classification and the response envelope."""

from dexcatalog.models.failure import (
    ApiResponse,
    CatalogFetchError,
    FailureKind,
    NotResolvedError,
    OutcomeType,
    SpeciesNotFoundError,
    create_success,
    create_unknown_failure,
)


class TestEnvelope:
    def test_success(self) -> None:
        response = create_success({"count": 3})

        assert response.outcome == OutcomeType.SUCCESS
        assert response.data == {"count": 3}
        assert response.failure is None

    def test_unknown_failure_hides_message(self) -> None:
        response = create_unknown_failure(ValueError("secret internals"))

        assert response.outcome == OutcomeType.UNKNOWN_FAILURE
        assert response.failure is not None
        assert response.failure.kind == FailureKind.UNKNOWN
        assert response.failure.detail == "ValueError"
        assert "secret" not in response.model_dump_json()

    def test_known_failure(self) -> None:
        response = ApiResponse.known_failure(FailureKind.NOT_FOUND, "No species named 'x'.")

        assert response.outcome == OutcomeType.KNOWN_FAILURE
        assert response.data is None


class TestKnownErrors:
    def test_catalog_fetch_error(self) -> None:
        error = CatalogFetchError(
            "https://pokeapi.co/api/v2/type/fire", "HTTP 500", status=500
        )

        response = error.to_response()

        assert error.status_code == 502
        assert error.status == 500
        assert response.failure is not None
        assert response.failure.kind == FailureKind.EXTERNAL_API_ERROR
        assert response.failure.detail == "https://pokeapi.co/api/v2/type/fire: HTTP 500"

    def test_species_not_found(self) -> None:
        error = SpeciesNotFoundError("missingno")

        assert error.status_code == 404
        assert "missingno" in error.message

    def test_not_resolved(self) -> None:
        error = NotResolvedError("bulbasaur")

        assert error.status_code == 409
        assert error.to_response().failure.kind == FailureKind.NOT_RESOLVED
