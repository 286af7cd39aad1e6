"""Tests for the inclusion flag backfill command line entry point."""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

from salesops.scripts import recalculate_inclusion_flags as script

RECALCULATE_PATH = "salesops.scripts.recalculate_inclusion_flags.recalculate"


class TestMain:
    def test_invalid_company_id_prints_usage(self, capsys):
        with patch(RECALCULATE_PATH, new=AsyncMock()) as recalculate:
            exit_code = script.main(["not-a-uuid"])

        err = capsys.readouterr().err
        assert exit_code == 2
        assert "Invalid company id: 'not-a-uuid'" in err
        assert "Usage:" in err
        recalculate.assert_not_called()

    def test_company_id_is_passed_through(self):
        company_id = uuid4()
        summary = {"total": 2, "updated": 2, "errors": 0}
        recalculate = AsyncMock(return_value=summary)
        with patch(RECALCULATE_PATH, new=recalculate):
            exit_code = script.main([str(company_id)])

        assert exit_code == 0
        recalculate.assert_awaited_once_with(company_id)

    def test_errors_give_a_failing_exit_code(self):
        summary = {"total": 2, "updated": 1, "errors": 1}
        with patch(RECALCULATE_PATH, new=AsyncMock(return_value=summary)):
            assert script.main([]) == 1
