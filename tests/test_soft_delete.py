"""Tests for soft delete functionality.

Deleting a patient only flags the row; the patient leaves the active list,
shows up in the deleted list and can be restored.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit_event import AuditEvent
from app.models.patient import Patient
from app.models.user import User
from app.services.patient import (
    PatientAlreadyDeletedError,
    PatientNotDeletedError,
    PatientNotFoundError,
    PatientService,
)


class TestSoftDeleteMixin:
    """Tests for SoftDeleteMixin functionality."""

    @pytest.mark.asyncio
    async def test_soft_delete_sets_fields(
        self,
        async_session: AsyncSession,
        patient: Patient,
        practitioner: User,
    ):
        """Test that soft_delete sets is_deleted, deleted_at and deleted_by."""
        assert patient.is_deleted is False
        assert patient.deleted_at is None

        patient.soft_delete(practitioner.id)
        await async_session.commit()
        await async_session.refresh(patient)

        assert patient.is_deleted is True
        assert patient.deleted_at is not None
        assert patient.deleted_by == practitioner.id

    @pytest.mark.asyncio
    async def test_restore_clears_fields(
        self,
        async_session: AsyncSession,
        patient: Patient,
        practitioner: User,
    ):
        patient.soft_delete(practitioner.id)
        await async_session.commit()

        patient.restore()
        await async_session.commit()
        await async_session.refresh(patient)

        assert patient.is_deleted is False
        assert patient.deleted_at is None
        assert patient.deleted_by is None

    @pytest.mark.asyncio
    async def test_row_still_exists(
        self,
        async_session: AsyncSession,
        patient: Patient,
        practitioner: User,
    ):
        """Test that soft-deleted records remain in the database."""
        patient_id = patient.id
        patient.soft_delete(practitioner.id)
        await async_session.commit()

        result = await async_session.execute(select(Patient).where(Patient.id == patient_id))
        assert result.scalar_one_or_none() is not None


class TestPatientServiceSoftDelete:
    """Service-level delete and restore rules."""

    @pytest.mark.asyncio
    async def test_delete_twice(
        self,
        async_session: AsyncSession,
        patient: Patient,
        practitioner: User,
    ):
        service = PatientService(async_session, practitioner.id)
        await service.soft_delete(patient.id, practitioner.id)

        with pytest.raises(PatientAlreadyDeletedError):
            await service.soft_delete(patient.id, practitioner.id)

    @pytest.mark.asyncio
    async def test_restore_active_patient(
        self,
        async_session: AsyncSession,
        patient: Patient,
        practitioner: User,
    ):
        service = PatientService(async_session, practitioner.id)

        with pytest.raises(PatientNotDeletedError):
            await service.restore(patient.id)

    @pytest.mark.asyncio
    async def test_deleted_patient_hidden_from_get(
        self,
        async_session: AsyncSession,
        patient: Patient,
        practitioner: User,
    ):
        service = PatientService(async_session, practitioner.id)
        await service.soft_delete(patient.id, practitioner.id)

        with pytest.raises(PatientNotFoundError):
            await service.get(patient.id)

        found = await service.get(patient.id, include_deleted=True)
        assert found.is_deleted is True

    @pytest.mark.asyncio
    async def test_other_practitioner_cannot_delete(
        self,
        async_session: AsyncSession,
        patient: Patient,
        other_practitioner: User,
    ):
        service = PatientService(async_session, other_practitioner.id)

        with pytest.raises(PatientNotFoundError):
            await service.soft_delete(patient.id, other_practitioner.id)


class TestSoftDeleteEndpoints:
    """DELETE /patients/{id}, GET /patients/deleted and POST .../restore."""

    @pytest.mark.asyncio
    async def test_delete_list_restore_cycle(
        self,
        client: TestClient,
        auth_headers: dict,
        patient: Patient,
    ):
        deleted = client.delete(f"/api/v1/patients/{patient.id}", headers=auth_headers)
        assert deleted.status_code == 200
        assert deleted.json() == {"message": "Patient deleted", "id": patient.id}

        active = client.get("/api/v1/patients", headers=auth_headers).json()
        assert active["data"] == []
        assert active["pagination"]["total"] == 0

        trash = client.get("/api/v1/patients/deleted", headers=auth_headers).json()
        assert [p["id"] for p in trash["data"]] == [patient.id]
        assert trash["data"][0]["is_deleted"] is True
        assert trash["data"][0]["deleted_at"] is not None

        assert client.get(f"/api/v1/patients/{patient.id}", headers=auth_headers).status_code == 404

        restored = client.post(f"/api/v1/patients/{patient.id}/restore", headers=auth_headers)
        assert restored.status_code == 200
        assert restored.json()["is_deleted"] is False

        active = client.get("/api/v1/patients", headers=auth_headers).json()
        assert [p["id"] for p in active["data"]] == [patient.id]

    @pytest.mark.asyncio
    async def test_delete_already_deleted(
        self,
        client: TestClient,
        auth_headers: dict,
        patient: Patient,
    ):
        client.delete(f"/api/v1/patients/{patient.id}", headers=auth_headers)

        response = client.delete(f"/api/v1/patients/{patient.id}", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Patient is already deleted"

    @pytest.mark.asyncio
    async def test_restore_not_deleted(
        self,
        client: TestClient,
        auth_headers: dict,
        patient: Patient,
    ):
        response = client.post(f"/api/v1/patients/{patient.id}/restore", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Patient is not deleted"

    @pytest.mark.asyncio
    async def test_deleted_list_search(
        self,
        client: TestClient,
        async_session: AsyncSession,
        auth_headers: dict,
        patient: Patient,
        practitioner: User,
    ):
        other = Patient(doctor_id=practitioner.id, full_name="Pedro Alves")
        async_session.add(other)
        await async_session.commit()
        client.delete(f"/api/v1/patients/{patient.id}", headers=auth_headers)
        client.delete(f"/api/v1/patients/{other.id}", headers=auth_headers)

        response = client.get("/api/v1/patients/deleted?search=pedro", headers=auth_headers)

        assert [p["full_name"] for p in response.json()["data"]] == ["Pedro Alves"]

    @pytest.mark.asyncio
    async def test_delete_and_restore_are_audited(
        self,
        client: TestClient,
        async_session: AsyncSession,
        auth_headers: dict,
        patient: Patient,
        practitioner: User,
    ):
        client.delete(f"/api/v1/patients/{patient.id}", headers=auth_headers)
        client.post(f"/api/v1/patients/{patient.id}/restore", headers=auth_headers)

        result = await async_session.execute(
            select(AuditEvent)
            .where(AuditEvent.entity_id == patient.id)
            .order_by(AuditEvent.created_at)
        )
        events = result.scalars().all()

        assert [e.action for e in events] == ["patient_soft_deleted", "patient_restored"]
        assert all(e.actor_id == practitioner.id for e in events)
