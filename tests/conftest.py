import sys
from pathlib import Path

# Add the parent directory to sys.path to import mortality_package without installing
sys.path.insert(0, str(Path(__file__).parent.parent))
