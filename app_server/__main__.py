from app_server.main import run

run()
