from conftest import add_attendee


def _question(client, headers, event_id, text, qtype="rating", **extra):
    res = client.post(
        f"/api/events/{event_id}/feedback-questions",
        json={"question": text, "type": qtype, **extra},
        headers=headers,
    )
    assert res.status_code == 201, res.text
    return res.json()


def test_question_order_defaults_to_next_slot(client, admin_headers, event):
    first = _question(client, admin_headers, event["id"], "How was the pace?")
    second = _question(client, admin_headers, event["id"], "Anything to add?", qtype="text")
    pinned = _question(client, admin_headers, event["id"], "Intro question", order=0)
    assert first["order"] == 0
    assert second["order"] == 1

    listed = client.get(f"/api/events/{event['id']}/feedback-questions", headers=admin_headers).json()
    assert [q["id"] for q in listed] == [first["id"], pinned["id"], second["id"]]


def test_rating_responses_are_validated(client, admin_headers, event):
    question = _question(client, admin_headers, event["id"], "How was the pace?")
    attendee = add_attendee(client, admin_headers, event["id"], "Kim", "kim@example.com")
    url = f"/api/feedback-questions/{question['id']}/responses"

    ok = client.post(url, json={"attendee_id": attendee["id"], "response": 4}, headers=admin_headers)
    assert ok.status_code == 201
    assert ok.json()["response"] == "4"

    too_high = client.post(url, json={"attendee_id": attendee["id"], "response": "9"}, headers=admin_headers)
    assert too_high.status_code == 400

    not_number = client.post(url, json={"attendee_id": attendee["id"], "response": "great"}, headers=admin_headers)
    assert not_number.status_code == 400

    listed = client.get(url, headers=admin_headers).json()
    assert [r["response"] for r in listed] == ["4"]


def test_text_responses_accept_free_text(client, admin_headers, event):
    question = _question(client, admin_headers, event["id"], "Comments?", qtype="text")
    attendee = add_attendee(client, admin_headers, event["id"], "Kim", "kim@example.com")
    res = client.post(
        f"/api/feedback-questions/{question['id']}/responses",
        json={"attendee_id": attendee["id"], "response": "  More exercises please "},
        headers=admin_headers,
    )
    assert res.status_code == 201
    assert res.json()["response"] == "More exercises please"

    by_attendee = client.get(f"/api/attendees/{attendee['id']}/feedback-responses", headers=admin_headers).json()
    assert len(by_attendee) == 1


def test_response_requires_attendee_of_same_event(client, admin_headers, event):
    question = _question(client, admin_headers, event["id"], "How was the pace?")
    other = client.post(
        "/api/events",
        json={"name": "Other", "start_date": "2026-04-01T09:00:00", "end_date": "2026-04-01T12:00:00"},
        headers=admin_headers,
    ).json()
    outsider = add_attendee(client, admin_headers, other["id"], "Out", "out@example.com")

    res = client.post(
        f"/api/feedback-questions/{question['id']}/responses",
        json={"attendee_id": outsider["id"], "response": 3},
        headers=admin_headers,
    )
    assert res.status_code == 400
    assert res.json()["detail"] == "Attendee does not belong to this event"


def test_delete_question_removes_responses(client, admin_headers, event):
    question = _question(client, admin_headers, event["id"], "How was the pace?")
    attendee = add_attendee(client, admin_headers, event["id"], "Kim", "kim@example.com")
    client.post(
        f"/api/feedback-questions/{question['id']}/responses",
        json={"attendee_id": attendee["id"], "response": 5},
        headers=admin_headers,
    )

    res = client.delete(f"/api/feedback-questions/{question['id']}", headers=admin_headers)
    assert res.status_code == 204
    assert client.get(f"/api/attendees/{attendee['id']}/feedback-responses", headers=admin_headers).json() == []


def test_patch_rejects_blank_question(client, admin_headers, event):
    question = _question(client, admin_headers, event["id"], "How was it?")
    res = client.patch(f"/api/feedback-questions/{question['id']}", json={"question": " "}, headers=admin_headers)
    assert res.status_code == 400
