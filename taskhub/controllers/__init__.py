from taskhub.controllers.task_controller import router as task_router
from taskhub.controllers.user_controller import router as user_router

# (router, prefix, tag) - main.py에서 반복 등록
all_routers = [
    (task_router, "/tasks", "Tasks"),
    (user_router, "/users", "Users"),
]
