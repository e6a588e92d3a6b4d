"""Survey question management and response submission tests."""

import pytest

QUESTION = {
    "title": "你的风险偏好是？",
    "question_type": "single",
    "is_required": True,
    "sort_order": 1,
    "options": [{"content": "保守"}, {"content": "稳健"}, {"content": "激进"}],
}


async def _create_question(client, headers, body=None) -> str:
    r = await client.post("/api/v1/survey/questions", json=body or QUESTION, headers=headers)
    assert r.status_code == 201
    return r.json()["question_id"]


@pytest.mark.asyncio
async def test_admin_creates_question_with_options(client, make_user):
    _, admin = await make_user("admin01", roles=("admin",))
    qid = await _create_question(client, admin)
    assert qid.startswith("q_")

    r = await client.get(f"/api/v1/survey/questions/{qid}")
    assert r.status_code == 200
    data = r.json()
    assert data["title"] == QUESTION["title"]
    assert [o["content"] for o in data["options"]] == ["保守", "稳健", "激进"]
    assert [o["sort_order"] for o in data["options"]] == [0, 1, 2]


@pytest.mark.asyncio
async def test_customer_cannot_create_question(client, make_user):
    _, customer = await make_user()
    r = await client.post("/api/v1/survey/questions", json=QUESTION, headers=customer)
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "AUTHORIZATION_ERROR"


@pytest.mark.asyncio
async def test_anonymous_cannot_create_question(client):
    r = await client.post("/api/v1/survey/questions", json=QUESTION)
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_list_questions_paginates(client, make_user):
    _, admin = await make_user("admin01", roles=("admin",))
    for i in range(3):
        await _create_question(client, admin, {**QUESTION, "title": f"问题{i}", "sort_order": i})

    r = await client.get("/api/v1/survey/questions", params={"page": 1, "limit": 2})
    assert r.status_code == 200
    body = r.json()
    assert body["pagination"] == {"page": 1, "limit": 2, "total": 3}
    assert [q["title"] for q in body["data"]] == ["问题0", "问题1"]

    r = await client.get("/api/v1/survey/questions", params={"page": 2, "limit": 2})
    assert [q["title"] for q in r.json()["data"]] == ["问题2"]


@pytest.mark.asyncio
async def test_update_question_replaces_options(client, make_user):
    _, admin = await make_user("admin01", roles=("admin",))
    qid = await _create_question(client, admin)

    update = {**QUESTION, "title": "更新后的问题", "options": [{"content": "是"}, {"content": "否"}]}
    r = await client.put(f"/api/v1/survey/questions/{qid}", json=update, headers=admin)
    assert r.status_code == 200
    assert r.json()["message"] == "问题更新成功"

    data = (await client.get(f"/api/v1/survey/questions/{qid}")).json()
    assert data["title"] == "更新后的问题"
    assert [o["content"] for o in data["options"]] == ["是", "否"]


@pytest.mark.asyncio
async def test_delete_question(client, make_user):
    _, admin = await make_user("admin01", roles=("admin",))
    qid = await _create_question(client, admin)

    r = await client.delete(f"/api/v1/survey/questions/{qid}", headers=admin)
    assert r.status_code == 200
    r = await client.get(f"/api/v1/survey/questions/{qid}")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_update_missing_question_is_404(client, make_user):
    _, admin = await make_user("admin01", roles=("admin",))
    r = await client.put("/api/v1/survey/questions/q_missing", json=QUESTION, headers=admin)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_submit_and_read_back_responses(client, make_user):
    _, admin = await make_user("admin01", roles=("admin",))
    _, customer = await make_user("trader01")
    choice_q = await _create_question(client, admin)
    text_q = await _create_question(
        client, admin, {"title": "描述你最近的一笔交易", "question_type": "text", "sort_order": 2},
    )
    options = (await client.get(f"/api/v1/survey/questions/{choice_q}")).json()["options"]
    chosen = options[2]["option_id"]

    r = await client.post(
        "/api/v1/survey/responses",
        json={
            "responses": [
                {"question_id": choice_q, "selected_option_ids": [chosen], "answer_duration": 4},
                {"question_id": text_q, "response_text": "追涨买入后回调止损", "answer_duration": 30},
            ]
        },
        headers=customer,
    )
    assert r.status_code == 201
    assert r.json() == {"message": "问卷提交成功", "count": 2}

    answers = (await client.get("/api/v1/survey/responses", headers=customer)).json()
    assert [a["question_id"] for a in answers] == [choice_q, text_q]
    assert answers[0]["selected_options"] == ["激进"]
    assert answers[1]["response_text"] == "追涨买入后回调止损"
    assert answers[1]["answer_duration"] == 30


@pytest.mark.asyncio
async def test_submit_rejects_unknown_question(client, make_user):
    _, customer = await make_user()
    r = await client.post(
        "/api/v1/survey/responses",
        json={"responses": [{"question_id": "q_nope", "response_text": "x"}]},
        headers=customer,
    )
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "无效的回答数据"

    answers = (await client.get("/api/v1/survey/responses", headers=customer)).json()
    assert answers == []


@pytest.mark.asyncio
async def test_submit_requires_authentication(client):
    r = await client.post(
        "/api/v1/survey/responses",
        json={"responses": [{"question_id": "q_1", "response_text": "x"}]},
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_submit_rejects_option_from_another_question(client, make_user):
    _, admin = await make_user("admin01", roles=("admin",))
    _, customer = await make_user("trader01")
    first_q = await _create_question(client, admin)
    second_q = await _create_question(client, admin, {**QUESTION, "title": "你的持仓周期是？", "sort_order": 2})
    foreign = (await client.get(f"/api/v1/survey/questions/{second_q}")).json()["options"][0]["option_id"]

    r = await client.post(
        "/api/v1/survey/responses",
        json={"responses": [{"question_id": first_q, "selected_option_ids": [foreign]}]},
        headers=customer,
    )
    assert r.status_code == 400
    error = r.json()["error"]
    assert error["message"] == "无效的回答数据"
    assert error["code"] == "VALIDATION_ERROR"

    answers = (await client.get("/api/v1/survey/responses", headers=customer)).json()
    assert answers == []
