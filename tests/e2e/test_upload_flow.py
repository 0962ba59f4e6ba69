"""
End-to-end tests for the upload and admin command-line tools.

Tests the complete flow: file on disk → upload CLI → database → admin CLI
"""

import json
import shutil
from pathlib import Path

import pandas as pd
import pytest

from candidate_ingest.cli import admin_cli, batch_cli
from candidate_ingest.warehouse.batches import UploadBatchStore

FIXTURES = Path(__file__).parent.parent / "fixtures"


@pytest.fixture
def db_env(clean_db, postgres_container, monkeypatch, tmp_path):
    """Point both CLIs at the test database through the environment."""
    monkeypatch.setenv("DB_HOST", postgres_container.get_container_host_ip())
    monkeypatch.setenv("DB_PORT", str(postgres_container.get_exposed_port(5432)))
    monkeypatch.setenv("DB_NAME", postgres_container.dbname)
    monkeypatch.setenv("DB_USER", postgres_container.username)
    monkeypatch.setenv("DB_PASSWORD", postgres_container.password)
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.chdir(tmp_path)
    return clean_db


def run_upload(capsys, *argv) -> tuple[int, dict]:
    with pytest.raises(SystemExit) as exc_info:
        batch_cli.main(["upload", *argv])
    return exc_info.value.code, json.loads(capsys.readouterr().out)


def run_admin(capsys, *argv) -> str:
    admin_cli.main(list(argv))
    return capsys.readouterr().out


@pytest.mark.e2e
@pytest.mark.integration
def test_candidate_upload_and_review(db_env, capsys):
    """
    Upload the candidate fixture, then inspect it with the admin CLI.

    Steps:
    1. Upload candidates.csv through the upload CLI
    2. Verify the printed summary
    3. List batches and show the rejected rows
    4. Check the audit log and registration stats
    """
    code, summary = run_upload(
        capsys, "--input", str(FIXTURES / "candidates.csv"), "--uploaded-by", "registrar@uni.edu.ng"
    )

    assert code == 0
    assert summary["totalRecords"] == 6
    assert summary["createdRecords"] == 2
    assert summary["failedRecords"] == 4
    assert [e["rowNumber"] for e in summary["errors"]] == [3, 5, 7, 8]

    listing = run_admin(capsys, "list-batches", "--status", "completed")
    assert summary["batchId"] in listing

    errors = json.loads(run_admin(capsys, "batch-errors", "--batch-id", summary["batchId"], "--json"))
    assert [e["error_type"] for e in errors] == ["validation", "validation", "duplicate", "validation"]

    table = run_admin(capsys, "batch-errors", "--batch-id", summary["batchId"])
    assert "4 row error(s)" in table

    shown = json.loads(run_admin(capsys, "show-batch", "--batch-id", summary["batchId"]))
    assert shown["status"] == "completed"

    audit = run_admin(capsys, "audit-log", "--actor", "registrar@uni.edu.ng")
    assert "upload_candidates" in audit

    stats = json.loads(run_admin(capsys, "candidate-stats"))
    assert stats["total"] == 2
    assert stats["registration_pending"] == 2


@pytest.mark.e2e
@pytest.mark.integration
def test_prelist_upload_and_statistics(db_env, capsys):
    code, summary = run_upload(
        capsys,
        "--input", str(FIXTURES / "prelist.csv"),
        "--uploaded-by", "admin-1",
        "--record-type", "prelist_score",
    )
    assert code == 0
    assert summary["createdRecords"] == 3

    code, summary = run_upload(
        capsys,
        "--input", str(FIXTURES / "prelist.csv"),
        "--uploaded-by", "admin-1",
        "--record-type", "prelist_score",
        "--policy", "update",
    )
    assert summary["updatedRecords"] == 3

    stats = json.loads(run_admin(capsys, "prelist-stats", "--json"))
    assert stats["total"] == 3
    assert stats["average_score"] == round((250 + 310 + 280) / 3, 2)
    assert stats["score_distribution"]["300-349"] == 1

    records = json.loads(run_admin(capsys, "prelist-records", "--min-score", "280"))
    assert [r["jamb_reg_no"] for r in records["records"]] == ["202512345678CD", "202512345678EF"]


@pytest.mark.e2e
@pytest.mark.integration
def test_failed_upload_retry_and_cleanup(db_env, capsys, tmp_path):
    """
    A corrupt workbook fails its batch; a retry with the right file completes it.

    Steps:
    1. Upload a corrupt .xlsx file → batch failed, exit code 1
    2. Retry the batch with a valid .xlsx file → batch completed
    3. Fail another batch and age it → cleanup deletes only that batch
    """
    broken = tmp_path / "candidates.xlsx"
    broken.write_bytes(b"this is not a workbook")

    code, failure = run_upload(capsys, "--input", str(broken), "--uploaded-by", "admin-1")

    assert code == 1
    batch_id = failure["batchId"]
    batches = UploadBatchStore(db_env)
    assert batches.get_batch(batch_id).status == "failed"

    fixed = tmp_path / "fixed.xlsx"
    pd.read_csv(FIXTURES / "candidates.csv", dtype=str, keep_default_na=False).to_excel(
        fixed, index=False, engine="openpyxl"
    )
    retried = json.loads(run_admin(
        capsys, "retry-batch", "--batch-id", batch_id, "--input", str(fixed), "--actor", "admin-1",
    ))

    assert retried["batchId"] == batch_id
    assert retried["createdRecords"] == 2
    batch = batches.get_batch(batch_id)
    assert batch.status == "completed"
    assert batch.filename == "candidates.xlsx"

    with pytest.raises(SystemExit):
        run_admin(
            capsys, "retry-batch", "--batch-id", "not-a-uuid", "--input", str(fixed), "--actor", "admin-1",
        )
    assert "Error:" in capsys.readouterr().out

    stale = shutil.copy(broken, tmp_path / "stale.xlsx")
    code, stale_failure = run_upload(capsys, "--input", str(stale), "--uploaded-by", "admin-1")
    db_env.execute_command(
        "UPDATE upload_batches SET uploaded_at = NOW() - INTERVAL '60 days' WHERE id = %s",
        (stale_failure["batchId"],),
    )

    output = run_admin(capsys, "cleanup-batches", "--older-than-days", "30", "--actor", "admin-1")

    assert "Deleted 1 failed batch(es)" in output
    assert batches.list_batches()["total"] == 1
    assert "cleanup_upload_batches" in run_admin(capsys, "audit-log", "--action", "cleanup_upload_batches")
