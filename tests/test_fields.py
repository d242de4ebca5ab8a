"""Field CRUD routes and ownership rules."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from types import SimpleNamespace

import pytest
from httpx import AsyncClient

from conftest import FakeAsyncSession, result_of

OTHER_OWNER = uuid.UUID("22222222-2222-2222-2222-222222222222")


def _field(owner_id: uuid.UUID | None, **overrides: object) -> SimpleNamespace:
	now = datetime.now(UTC)
	values = {
		"id": uuid.uuid4(),
		"owner_id": owner_id,
		"fieldname": "North Paddy",
		"fieldlocation": "Polonnaruwa",
		"fieldsize": "2 acres",
		"fieldtype": "paddy",
		"crops": ["rice"],
		"created_at": now,
		"updated_at": now,
	}
	values.update(overrides)
	return SimpleNamespace(**values)


@pytest.mark.asyncio
async def test_create_field_as_signed_in_farmer(
	auth_client: AsyncClient, fake_db_session: FakeAsyncSession, farmer: SimpleNamespace, access_token: str
) -> None:
	new_id = uuid.uuid4()
	# Token lookup, then the name check.
	fake_db_session.execute.side_effect = [result_of(farmer), result_of(None)]

	def assign_id(obj: object) -> None:
		obj.id = new_id

	fake_db_session.refresh.side_effect = assign_id

	response = await auth_client.post(
		"/api/fields/create",
		headers={"Authorization": f"Bearer {access_token}"},
		json={
			"fieldname": " North Paddy ",
			"fieldlocation": "Polonnaruwa",
			"fieldsize": "2 acres",
			"fieldtype": "paddy",
			"crops": ["rice", " ", "green gram "],
		},
	)

	assert response.status_code == 201
	assert response.json() == {"message": "Field created successfully", "id": str(new_id)}
	stored = fake_db_session.add.call_args.args[0]
	assert stored.owner_id == farmer.id
	assert stored.fieldname == "North Paddy"
	assert stored.crops == ["rice", "green gram"]


@pytest.mark.asyncio
async def test_create_field_requires_all_fields(client: AsyncClient, fake_db_session: FakeAsyncSession) -> None:
	response = await client.post("/api/fields/create", json={"fieldname": "Only a name"})

	assert response.status_code == 400
	assert response.json() == {"error": "All fields are required"}
	fake_db_session.add.assert_not_called()


@pytest.mark.asyncio
async def test_create_field_duplicate_name(client: AsyncClient, fake_db_session: FakeAsyncSession) -> None:
	fake_db_session.execute.return_value = result_of(uuid.uuid4())

	response = await client.post(
		"/api/fields/create",
		json={"fieldname": "North Paddy", "fieldlocation": "x", "fieldsize": "1", "fieldtype": "paddy"},
	)

	assert response.status_code == 400
	assert response.json() == {"error": "Field already exists"}


@pytest.mark.asyncio
async def test_create_field_without_token(auth_client: AsyncClient, fake_db_session: FakeAsyncSession) -> None:
	fake_db_session.execute.return_value = result_of(None)
	fake_db_session.refresh.side_effect = lambda obj: setattr(obj, "id", uuid.uuid4())

	response = await auth_client.post(
		"/api/fields/create",
		json={"fieldname": "North Paddy", "fieldlocation": "x", "fieldsize": "1", "fieldtype": "paddy"},
	)

	assert response.status_code == 201
	stored = fake_db_session.add.call_args.args[0]
	assert stored.owner_id is None


@pytest.mark.asyncio
async def test_ownerless_field_cannot_be_modified(client: AsyncClient, fake_db_session: FakeAsyncSession) -> None:
	field = _field(None)
	fake_db_session.execute.return_value = result_of(field)

	patched = await client.patch(f"/api/fields/{field.id}", json={"fieldsize": "9 acres"})
	deleted = await client.delete(f"/api/fields/{field.id}")

	assert patched.status_code == 403
	assert deleted.status_code == 403
	assert field.fieldsize == "2 acres"
	fake_db_session.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_list_includes_ownerless_fields(client: AsyncClient, fake_db_session: FakeAsyncSession) -> None:
	fake_db_session.execute.return_value = result_of([_field(None)])

	response = await client.get("/api/fields/")

	assert response.status_code == 200
	assert response.json()[0]["ownerId"] is None


@pytest.mark.asyncio
async def test_list_fields(client: AsyncClient, fake_db_session: FakeAsyncSession, farmer: SimpleNamespace) -> None:
	fields = [_field(farmer.id), _field(OTHER_OWNER, fieldname="Hill Plot", crops=[])]
	fake_db_session.execute.return_value = result_of(fields)

	response = await client.get("/api/fields/")

	assert response.status_code == 200
	body = response.json()
	assert [item["fieldname"] for item in body] == ["North Paddy", "Hill Plot"]
	assert body[0]["ownerId"] == str(farmer.id)


@pytest.mark.asyncio
async def test_get_missing_field(client: AsyncClient, fake_db_session: FakeAsyncSession) -> None:
	fake_db_session.execute.return_value = result_of(None)

	response = await client.get(f"/api/fields/{uuid.uuid4()}")

	assert response.status_code == 404
	assert response.json() == {"error": "Field not found"}


@pytest.mark.asyncio
async def test_update_own_field(client: AsyncClient, fake_db_session: FakeAsyncSession, farmer: SimpleNamespace) -> None:
	field = _field(farmer.id)
	fake_db_session.execute.return_value = result_of(field)

	response = await client.patch(f"/api/fields/{field.id}", json={"fieldsize": " 3 acres ", "crops": ["maize"]})

	assert response.status_code == 200
	assert response.json()["fieldsize"] == "3 acres"
	assert field.crops == ["maize"]


@pytest.mark.asyncio
async def test_update_foreign_field_forbidden(client: AsyncClient, fake_db_session: FakeAsyncSession) -> None:
	field = _field(OTHER_OWNER)
	fake_db_session.execute.return_value = result_of(field)

	response = await client.patch(f"/api/fields/{field.id}", json={"fieldsize": "9 acres"})

	assert response.status_code == 403
	assert field.fieldsize == "2 acres"


@pytest.mark.asyncio
async def test_update_without_changes(client: AsyncClient, fake_db_session: FakeAsyncSession, farmer: SimpleNamespace) -> None:
	field = _field(farmer.id)
	fake_db_session.execute.return_value = result_of(field)

	response = await client.patch(f"/api/fields/{field.id}", json={})

	assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_own_field(client: AsyncClient, fake_db_session: FakeAsyncSession, farmer: SimpleNamespace) -> None:
	field = _field(farmer.id)
	fake_db_session.execute.return_value = result_of(field)

	response = await client.delete(f"/api/fields/{field.id}")

	assert response.status_code == 204
	fake_db_session.delete.assert_awaited_once_with(field)


@pytest.mark.asyncio
async def test_delete_foreign_field_forbidden(client: AsyncClient, fake_db_session: FakeAsyncSession) -> None:
	field = _field(OTHER_OWNER)
	fake_db_session.execute.return_value = result_of(field)

	response = await client.delete(f"/api/fields/{field.id}")

	assert response.status_code == 403
	fake_db_session.delete.assert_not_awaited()
