from conftest import add_attendee


def _task(client, headers, event_id, name):
    res = client.post(f"/api/events/{event_id}/tasks", json={"name": name}, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()


def _attendee_status(client, headers, attendee_id):
    return client.get(f"/api/attendees/{attendee_id}", headers=headers).json()


def test_task_crud_and_soft_delete(client, admin_headers, event):
    task = _task(client, admin_headers, event["id"], "Setup environment")
    assert task["status"] == "active"

    patched = client.patch(f"/api/tasks/{task['id']}", json={"description": "Install Python"}, headers=admin_headers)
    assert patched.json()["description"] == "Install Python"

    removed = client.delete(f"/api/tasks/{task['id']}", headers=admin_headers)
    assert removed.status_code == 200
    assert removed.json()["status"] == "inactive"

    active = client.get(f"/api/events/{event['id']}/tasks", headers=admin_headers).json()
    assert active == []
    everything = client.get(f"/api/events/{event['id']}/tasks?include_inactive=true", headers=admin_headers).json()
    assert [t["id"] for t in everything] == [task["id"]]


def test_progress_rolls_attendee_up_to_completed(client, admin_headers, event):
    first = _task(client, admin_headers, event["id"], "First")
    second = _task(client, admin_headers, event["id"], "Second")
    attendee = add_attendee(client, admin_headers, event["id"], "Kim", "kim@example.com")

    started = client.post(
        f"/api/tasks/{first['id']}/progress",
        json={"attendee_id": attendee["id"], "status": "in_progress"},
        headers=admin_headers,
    )
    assert started.status_code == 201
    assert started.json()["start_time"] is not None
    assert started.json()["end_time"] is None
    assert _attendee_status(client, admin_headers, attendee["id"])["status"] == "in_progress"

    client.post(
        f"/api/tasks/{second['id']}/progress",
        json={
            "attendee_id": attendee["id"],
            "status": "completed",
            "start_time": "2026-03-01T10:00:00",
            "end_time": "2026-03-01T11:30:00",
        },
        headers=admin_headers,
    )
    assert _attendee_status(client, admin_headers, attendee["id"])["status"] == "in_progress"

    finished = client.patch(
        f"/api/task-progress/{started.json()['id']}",
        json={"status": "completed", "start_time": "2026-03-01T09:00:00", "end_time": "2026-03-01T09:45:00"},
        headers=admin_headers,
    )
    assert finished.status_code == 200
    rolled = _attendee_status(client, admin_headers, attendee["id"])
    assert rolled["status"] == "completed"
    assert rolled["completion_time"] == "2:15"

    progress = client.get(f"/api/attendees/{attendee['id']}/progress", headers=admin_headers).json()
    assert len(progress) == 2


def test_inactive_tasks_do_not_block_completion(client, admin_headers, event):
    kept = _task(client, admin_headers, event["id"], "Kept")
    dropped = _task(client, admin_headers, event["id"], "Dropped")
    client.delete(f"/api/tasks/{dropped['id']}", headers=admin_headers)
    attendee = add_attendee(client, admin_headers, event["id"], "Kim", "kim@example.com")

    client.post(
        f"/api/tasks/{kept['id']}/progress",
        json={"attendee_id": attendee["id"], "status": "completed"},
        headers=admin_headers,
    )
    assert _attendee_status(client, admin_headers, attendee["id"])["status"] == "completed"


def test_duplicate_progress_conflicts(client, admin_headers, event):
    task = _task(client, admin_headers, event["id"], "Only")
    attendee = add_attendee(client, admin_headers, event["id"], "Kim", "kim@example.com")
    payload = {"attendee_id": attendee["id"]}

    assert client.post(f"/api/tasks/{task['id']}/progress", json=payload, headers=admin_headers).status_code == 201
    again = client.post(f"/api/tasks/{task['id']}/progress", json=payload, headers=admin_headers)
    assert again.status_code == 409


def test_progress_rejects_attendee_from_other_event(client, admin_headers, event):
    task = _task(client, admin_headers, event["id"], "Only")
    other = client.post(
        "/api/events",
        json={"name": "Other", "start_date": "2026-04-01T09:00:00", "end_date": "2026-04-01T12:00:00"},
        headers=admin_headers,
    ).json()
    outsider = add_attendee(client, admin_headers, other["id"], "Out", "out@example.com")

    res = client.post(f"/api/tasks/{task['id']}/progress", json={"attendee_id": outsider["id"]}, headers=admin_headers)
    assert res.status_code == 400


def test_mentor_rating_is_bounded(client, admin_headers, event):
    task = _task(client, admin_headers, event["id"], "Only")
    attendee = add_attendee(client, admin_headers, event["id"], "Kim", "kim@example.com")
    res = client.post(
        f"/api/tasks/{task['id']}/progress",
        json={"attendee_id": attendee["id"], "mentor_rating": 6},
        headers=admin_headers,
    )
    assert res.status_code == 400


def test_offset_timestamps_are_stored_in_app_timezone(client, admin_headers, event):
    first = _task(client, admin_headers, event["id"], "First")
    second = _task(client, admin_headers, event["id"], "Second")
    attendee = add_attendee(client, admin_headers, event["id"], "Kim", "kim@example.com")

    shifted = client.post(
        f"/api/tasks/{first['id']}/progress",
        json={
            "attendee_id": attendee["id"],
            "status": "completed",
            "start_time": "2026-03-01T09:00:00+05:30",
            "end_time": "2026-03-01T04:30:00Z",
        },
        headers=admin_headers,
    )
    assert shifted.status_code == 201
    assert shifted.json()["start_time"].startswith("2026-03-01T03:30:00")
    assert shifted.json()["end_time"].startswith("2026-03-01T04:30:00")

    client.post(
        f"/api/tasks/{second['id']}/progress",
        json={
            "attendee_id": attendee["id"],
            "status": "completed",
            "start_time": "2026-03-01T10:00:00Z",
            "end_time": "2026-03-01T11:00:00Z",
        },
        headers=admin_headers,
    )
    rolled = _attendee_status(client, admin_headers, attendee["id"])
    assert rolled["status"] == "completed"
    assert rolled["completion_time"] == "2:00"


def test_reopened_task_clears_completion_time(client, admin_headers, event):
    task = _task(client, admin_headers, event["id"], "Only")
    attendee = add_attendee(client, admin_headers, event["id"], "Kim", "kim@example.com")
    progress = client.post(
        f"/api/tasks/{task['id']}/progress",
        json={
            "attendee_id": attendee["id"],
            "status": "completed",
            "start_time": "2026-03-01T09:00:00",
            "end_time": "2026-03-01T10:30:00",
        },
        headers=admin_headers,
    ).json()
    assert _attendee_status(client, admin_headers, attendee["id"])["completion_time"] == "1:30"

    client.patch(f"/api/task-progress/{progress['id']}", json={"status": "in_progress"}, headers=admin_headers)
    reopened = _attendee_status(client, admin_headers, attendee["id"])
    assert reopened["status"] == "in_progress"
    assert reopened["completion_time"] is None


def test_patch_rejects_blank_task_name(client, admin_headers, event):
    task = _task(client, admin_headers, event["id"], "Only")
    res = client.patch(f"/api/tasks/{task['id']}", json={"name": "   "}, headers=admin_headers)
    assert res.status_code == 400
    assert client.get(f"/api/tasks/{task['id']}", headers=admin_headers).json()["name"] == "Only"
