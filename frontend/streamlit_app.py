import os

import requests
import streamlit as st

API_URL = os.getenv("API_URL", "http://localhost:8080")  # URL FastAPI-приложения

STATUSES = ["pending", "in progress", "done"]
PRIORITIES = ["low", "medium", "high"]

# Инициализация session_state для хранения токена, имени пользователя и текущей «страницы»
if "token" not in st.session_state:
    st.session_state.token = None
if "username" not in st.session_state:
    st.session_state.username = None
if "menu" not in st.session_state:
    st.session_state.menu = "Login"


def _headers():
    return {"Authorization": f"Bearer {st.session_state.token}"}


def _error_message(response):
    try:
        return response.json().get("message", response.text)
    except ValueError:
        return response.text


# -----------------------------
# Функции для работы с API
# -----------------------------
def login(username, password):
    response = requests.post(f"{API_URL}/login", json={"username": username, "password": password})
    if response.status_code == 200:
        st.session_state.token = response.json()["token"]
        st.session_state.username = username
        st.success("Вход выполнен успешно!")
        st.session_state.menu = "Задачи"
    else:
        st.error("Ошибка входа: " + _error_message(response))


def register(username, password):
    response = requests.post(f"{API_URL}/register", json={"username": username, "password": password})
    if response.status_code == 200:
        st.success("Регистрация прошла успешно! Теперь можно войти.")
        st.session_state.menu = "Login"
    else:
        st.error("Ошибка регистрации: " + _error_message(response))


def get_tasks():
    response = requests.get(f"{API_URL}/tasks", headers=_headers())
    if response.status_code == 200:
        return response.json()
    st.error("Ошибка получения задач: " + _error_message(response))
    return []


def create_task(text, status, priority):
    json_data = {"text": text, "status": status, "priority": priority}
    response = requests.post(f"{API_URL}/tasks", headers=_headers(), json=json_data)
    if response.status_code == 200:
        st.success("Задача создана!")
    else:
        st.error("Ошибка создания задачи: " + _error_message(response))


def update_field(task_id, field, value):
    response = requests.patch(f"{API_URL}/tasks/{task_id}/{field}", headers=_headers(), json={field: value})
    if response.status_code == 200:
        st.success("Задача обновлена!")
    else:
        st.error("Ошибка обновления задачи: " + _error_message(response))


def delete_task(task_id):
    response = requests.delete(f"{API_URL}/tasks/{task_id}", headers=_headers())
    if response.status_code == 200:
        st.success("Задача удалена!")
    else:
        st.error("Ошибка удаления задачи: " + _error_message(response))


def _index(options, value):
    return options.index(value) if value in options else 0


# -----------------------------
# Боковое меню (кнопки)
# -----------------------------
st.sidebar.title("Меню")

if st.sidebar.button("Логин"):
    st.session_state.menu = "Login"

if st.sidebar.button("Регистрация"):
    st.session_state.menu = "Register"

if st.sidebar.button("Задачи"):
    st.session_state.menu = "Задачи"

if st.sidebar.button("Создать задачу"):
    st.session_state.menu = "Создать задачу"

# -----------------------------
# Основной контент
# -----------------------------
st.title("Task Tracker")

if st.session_state.menu == "Login":
    st.header("Вход")
    with st.form("login_form"):
        username = st.text_input("Username")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Войти")
        if submitted:
            login(username, password)

elif st.session_state.menu == "Register":
    st.header("Регистрация")
    with st.form("register_form"):
        username = st.text_input("Username")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Зарегистрироваться")
        if submitted:
            register(username, password)

elif st.session_state.menu == "Задачи":
    st.header("Ваши задачи")
    if st.session_state.token is None:
        st.warning("Сначала необходимо выполнить вход!")
    else:
        tasks = get_tasks()
        if tasks:
            for task in tasks:
                st.write("Задача:", task["text"])
                col_status, col_priority, col_del = st.columns([2, 2, 1])
                with col_status:
                    new_status = st.selectbox(
                        "Статус", STATUSES, index=_index(STATUSES, task["status"]), key=f"status_{task['id']}"
                    )
                    if new_status != task["status"]:
                        update_field(task["id"], "status", new_status)
                with col_priority:
                    new_priority = st.selectbox(
                        "Приоритет", PRIORITIES, index=_index(PRIORITIES, task["priority"]), key=f"priority_{task['id']}"
                    )
                    if new_priority != task["priority"]:
                        update_field(task["id"], "priority", new_priority)
                with col_del:
                    if st.button("Удалить", key=f"delete_{task['id']}"):
                        delete_task(task["id"])
                        st.info("Нажмите «Задачи» заново, чтобы увидеть изменения.")
                st.write("---")
        else:
            st.info("Задачи не найдены.")

elif st.session_state.menu == "Создать задачу":
    st.header("Создать новую задачу")
    if st.session_state.token is None:
        st.warning("Сначала необходимо выполнить вход!")
    else:
        with st.form("create_task_form"):
            text = st.text_input("Текст задачи")
            status = st.selectbox("Статус", STATUSES)
            priority = st.selectbox("Приоритет", PRIORITIES, index=1)
            submitted = st.form_submit_button("Создать задачу")
            if submitted:
                create_task(text, status, priority)
