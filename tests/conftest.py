import sys
from pathlib import Path

# The globe_* modules live at the repository root
sys.path.insert(0, str(Path(__file__).parent.parent))
