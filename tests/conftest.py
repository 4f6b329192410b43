import os

# Keep test runs from writing logs/app.log into the working directory
os.environ.setdefault("LOG_TO_FILE", "false")
