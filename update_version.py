# stamp src/mcdex/_version.py with the latest tag or git commit
import sys
import subprocess

VERSION_FILE = "src/mcdex/_version.py"

git_commit = subprocess.check_output(["git", "rev-parse", "--short", "HEAD"], text=True)
if len(sys.argv) < 2:
    print("Missing argument, use --release or --dev")
    sys.exit(1)
if sys.argv[1] == "--release":
    new_version = subprocess.check_output(["git", "describe", "--tags", "--abbrev=0"], text=True).strip().lstrip("v")
elif sys.argv[1] == "--dev":
    new_version = f"0.0.0.dev0+{git_commit.strip()}"
else:
    print("Unknown argument, use --release or --dev")
    sys.exit(1)
print("Stamping version", new_version)
with open(VERSION_FILE, "w") as f:
    f.write(f'version = "{new_version}"\n')
