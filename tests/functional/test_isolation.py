async def test_tasks_of_other_users_are_invisible(aclient, auth_headers_for):
    alice = await auth_headers_for("alice", "pw1")
    bob = await auth_headers_for("bob", "pw2")

    task = (await aclient.post("/tasks", json={"text": "alice's secret"}, headers=alice)).json()
    task_id = task["id"]

    assert (await aclient.get("/tasks", headers=bob)).json() == []

    responses = [
        await aclient.get(f"/tasks/{task_id}", headers=bob),
        await aclient.patch(f"/tasks/{task_id}/status", json={"status": "done"}, headers=bob),
        await aclient.patch(f"/tasks/{task_id}/priority", json={"priority": "low"}, headers=bob),
        await aclient.delete(f"/tasks/{task_id}", headers=bob),
    ]
    for resp in responses:
        assert resp.status_code == 404
        assert resp.json() == {"message": "Task not found"}
        assert "alice's secret" not in resp.text

    # задача alice не изменилась
    unchanged = (await aclient.get(f"/tasks/{task_id}", headers=alice)).json()
    assert unchanged["status"] == "pending"
    assert unchanged["priority"] == "medium"
