from mediastamp.main import run

run()
