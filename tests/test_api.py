from types import SimpleNamespace
from typing import List, Optional
from urllib.parse import quote

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

import main
from graph import IRRELEVANT_MESSAGE_REPLY, NO_CONTENT_REPLY
from models import Message, UploadedFile
from services.files import MAX_FILE_SIZE, FileService
from services.threads import ThreadService
from tests.fakes import ANALYSIS_REPLY, SUMMARY_REPLY, InMemoryStorage

BILL = b"service,amount\nEC2,1200.50\nS3,80.10\n"


def upload(client: TestClient, name: str = "aws-billing.csv", content: bytes = BILL,
           session_id: str = "session-1", headers: Optional[dict] = None, **params) -> dict:
    response = client.post(
        "/api/files/upload",
        params=params,
        headers=headers,
        files={"file": (name, content, "text/csv")},
        data={"sessionId": session_id, "fileType": "text/csv"}
    )
    assert response.status_code == 200, response.text
    return response.json()["file"]


@pytest.fixture
def purged(monkeypatch: pytest.MonkeyPatch) -> List[List[str]]:
    calls: List[List[str]] = []
    monkeypatch.setattr(main, "purge_objects", SimpleNamespace(delay=calls.append))
    return calls


def test_health(client: TestClient) -> None:
    assert client.get("/health").json()["status"] == "healthy"


def test_new_chat_twice_gives_distinct_threads(client: TestClient, db: Session) -> None:
    first = client.post("/api/chat/new").json()
    second = client.post("/api/chat/new").json()

    assert first["success"] is True
    assert first["threadId"] != second["threadId"]
    assert ThreadService.get_latest_thread(db, "guest").thread_id == second["threadId"]


def test_billing_upload_then_chat_is_analyzed(client: TestClient, db: Session) -> None:
    uploaded = upload(client)

    response = client.post("/api/chat", json={
        "message": "please review",
        "fileIds": [uploaded["id"]],
        "sessionId": "session-1"
    })

    assert response.status_code == 200
    body = response.json()
    assert body["reply"] == ANALYSIS_REPLY
    assert body["threadId"]
    assert body["analysisId"]
    assert body["messageId"]

    user_message = db.query(Message).filter(Message.message_id == body["messageId"]).one()
    assert user_message.relevant is True
    assert db.get(UploadedFile, uploaded["id"]).message_id == body["messageId"]


def test_off_topic_chat_gets_canned_reply(client: TestClient) -> None:
    response = client.post("/api/chat", json={"message": "what's your favorite movie?"})

    assert response.status_code == 200
    body = response.json()
    assert body["reply"] == IRRELEVANT_MESSAGE_REPLY
    assert "analysisId" not in body
    assert body["threadId"]


def test_empty_chat_without_thread_creates_nothing(client: TestClient, db: Session) -> None:
    response = client.post("/api/chat", json={"message": "   "})

    assert response.json() == {"reply": NO_CONTENT_REPLY, "threadId": None}
    assert ThreadService.get_latest_thread(db, "guest") is None


def test_chat_into_unknown_thread(client: TestClient) -> None:
    response = client.post("/api/chat", json={"message": "aws?", "threadId": "missing"})

    assert response.status_code == 404


def test_chat_failure_is_a_500(client: TestClient) -> None:
    async def broken_model(*args, **kwargs):
        raise RuntimeError("no api key")

    main.app.dependency_overrides[main.get_analysis_model] = lambda: SimpleNamespace(ainvoke=broken_model)

    response = client.post("/api/chat", json={"message": "reduce my aws bill"})

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal Server Error"}


def test_users_are_isolated(client: TestClient) -> None:
    client.post("/api/chat", json={"message": "aws costs"}, headers={"X-User-ID": "alice"})

    assert client.get("/api/chat/list", headers={"X-User-ID": "bob"}).json() == {"threads": []}
    assert len(client.get("/api/chat/list", headers={"X-User-ID": "alice"}).json()["threads"]) == 1


def test_list_threads_only_shows_threads_with_messages(client: TestClient) -> None:
    client.post("/api/chat", json={"message": "EC2 costs"})
    busy = client.post("/api/chat", json={"message": "more EC2 costs"}).json()["threadId"]
    client.post("/api/chat/new")

    threads = client.get("/api/chat/list").json()["threads"]

    assert [(t["threadId"], t["msgCount"], t["title"]) for t in threads] == [(busy, 4, "New Conversation")]


def test_history_and_thread_messages_include_files(client: TestClient) -> None:
    assert client.get("/api/chat/history").json() == {"messages": []}

    uploaded = upload(client)
    reply = client.post("/api/chat", json={"message": "", "sessionId": "session-1"}).json()

    history = client.get("/api/chat/history").json()["messages"]
    assert [m["role"] for m in history] == ["user", "assistant"]
    assert history[0]["text"] == "[Uploaded Files: aws-billing.csv]"
    assert history[0]["messageId"] == reply["messageId"]
    assert history[0]["files"][0]["downloadUrl"] == f"/api/files/{uploaded['r2Key']}"
    assert history[1]["files"] == []

    messages = client.get(f"/api/chat/threads/{reply['threadId']}/messages").json()["messages"]
    assert [m["text"] for m in messages] == [history[0]["text"], ANALYSIS_REPLY]
    assert all("timestamp" in m for m in messages)


def test_delete_thread_removes_everything(client: TestClient, storage: InMemoryStorage,
                                          purged: List[List[str]]) -> None:
    uploaded = upload(client)
    thread_id = client.post("/api/chat", json={"message": "go", "sessionId": "session-1"}).json()["threadId"]

    response = client.delete(f"/api/chat/threads/{thread_id}")

    assert response.json() == {"success": True}
    assert purged == [[uploaded["r2Key"]]]
    assert client.get(f"/api/chat/threads/{thread_id}/messages").json() == {"messages": []}
    assert client.get(f"/api/chat/threads/{thread_id}/analysis").status_code == 404
    assert client.delete(f"/api/chat/threads/{thread_id}").status_code == 404


def test_upload_then_download_round_trip(client: TestClient) -> None:
    uploaded = upload(client, name="gcp-usage.csv", content=b"\x00binary,ok\n")

    response = client.get(uploaded["downloadUrl"])

    assert response.status_code == 200
    assert response.content == b"\x00binary,ok\n"
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"] == 'attachment; filename="gcp-usage.csv"'


def test_non_ascii_filename_download(client: TestClient, db: Session, storage: InMemoryStorage) -> None:
    thread = ThreadService.create_thread(db, "guest")
    record = FileService.upload_file(db, storage, "guest", thread.thread_id, "s1",
                                     "账单-billing.csv", b"EC2,10\n", "text/csv")

    response = client.get(FileService.download_url(record.r2_key))

    assert response.status_code == 200
    assert response.content == b"EC2,10\n"
    assert response.headers["content-disposition"] == (
        f"attachment; filename=\"-billing.csv\"; filename*=UTF-8''{quote('账单-billing.csv')}"
    )


def test_files_of_deleted_thread_stay_private(client: TestClient, purged: List[List[str]]) -> None:
    alice = {"X-User-ID": "alice"}
    bob = {"X-User-ID": "bob"}
    key = upload(client, content=b"secret,1", headers=alice)["r2Key"]
    assert client.get(f"/api/files/{key}", headers=bob).status_code == 404

    thread_id = client.post(
        "/api/chat", json={"message": "aws", "sessionId": "session-1"}, headers=alice
    ).json()["threadId"]
    assert client.delete(f"/api/chat/threads/{thread_id}", headers=alice).json() == {"success": True}
    assert purged == [[key]]

    # Row is gone but the bytes wait for the purge task
    assert client.get(f"/api/files/{key}", headers=bob).status_code == 404
    assert client.get(f"/api/files/{key}", headers=alice).content == b"secret,1"


def test_upload_into_explicit_thread(client: TestClient, db: Session) -> None:
    first = client.post("/api/chat/new").json()["threadId"]
    client.post("/api/chat/new")

    uploaded = upload(client, threadId=first)

    assert db.get(UploadedFile, uploaded["id"]).thread_id == first
    assert client.post(
        "/api/files/upload",
        params={"threadId": "missing"},
        files={"file": ("a.csv", b"x", "text/csv")},
        data={"sessionId": "s"}
    ).status_code == 404


def test_upload_validation(client: TestClient, db: Session) -> None:
    no_session = client.post("/api/files/upload", files={"file": ("a.csv", b"x", "text/csv")})
    no_file = client.post("/api/files/upload", data={"sessionId": "s"})
    too_big = client.post(
        "/api/files/upload",
        files={"file": ("big.csv", b"x" * (MAX_FILE_SIZE + 1), "text/csv")},
        data={"sessionId": "s"}
    )

    assert no_session.status_code == 400
    assert no_file.status_code == 400
    assert too_big.status_code == 400
    assert "10MB" in too_big.json()["detail"]
    assert ThreadService.get_latest_thread(db, "guest") is None


def test_download_unknown_key(client: TestClient) -> None:
    assert client.get("/api/files/guest/nothing/here.csv").status_code == 404


def test_download_object_without_metadata(client: TestClient, storage: InMemoryStorage) -> None:
    storage.objects["guest/t/orphan.json"] = (b"{}", "application/json")

    response = client.get("/api/files/guest/t/orphan.json")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/octet-stream"
    assert response.headers["content-disposition"] == 'attachment; filename="orphan.json"'


def test_delete_file(client: TestClient, storage: InMemoryStorage, db: Session) -> None:
    uploaded = upload(client)

    assert client.delete("/api/files/abc").status_code == 400
    assert client.delete("/api/files/9999").status_code == 404
    assert client.delete(f"/api/files/{uploaded['id']}", headers={"X-User-ID": "mallory"}).status_code == 404

    assert client.delete(f"/api/files/{uploaded['id']}").json() == {"success": True}
    assert uploaded["r2Key"] not in storage.objects
    assert db.get(UploadedFile, uploaded["id"]) is None


def test_summarize(client: TestClient) -> None:
    assert client.post("/api/chat/summarize", json={}).status_code == 400

    thread_id = client.post("/api/chat", json={"message": "EC2 spend"}).json()["threadId"]
    response = client.post("/api/chat/summarize", json={"threadId": thread_id})

    assert response.status_code == 200
    assert response.json() == {"summary": SUMMARY_REPLY}


def test_analyses_endpoints(client: TestClient) -> None:
    reply = client.post("/api/chat", json={"message": "Azure savings?"}).json()

    latest = client.get(f"/api/chat/threads/{reply['threadId']}/analysis").json()
    assert latest["id"] == reply["analysisId"]
    assert latest["comment"] == "Azure savings?"
    assert latest["result"] == ANALYSIS_REPLY

    listed = client.get("/api/analyses").json()["analyses"]
    assert [a["id"] for a in listed] == [reply["analysisId"]]


def test_debug_files_requires_admin_token(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ADMIN_TOKEN", raising=False)
    assert client.get("/api/debug/files").status_code == 404

    monkeypatch.setenv("ADMIN_TOKEN", "letmein")
    assert client.get("/api/debug/files").status_code == 403

    uploaded = upload(client)
    response = client.get("/api/debug/files", headers={"X-Admin-Token": "letmein"})

    assert response.status_code == 200
    body = response.json()
    assert [f["key"] for f in body["r2Files"]] == [uploaded["r2Key"]]
    assert body["databaseFiles"][0]["sessionId"] == "session-1"
    assert body["r2Bucket"] == "test-bucket"
    assert body["totalStorage"] == f"{len(BILL)} bytes"
