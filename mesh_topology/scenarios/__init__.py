from .greeter import greeter_mesh
from .personal_color import personal_color_mesh
from .rolling_release import color_rolling_release

SCENARIOS = {
    "personal-color": personal_color_mesh,
    "greeting": greeter_mesh,
    "color-rolling-release": color_rolling_release,
}

__all__ = ["SCENARIOS", "color_rolling_release", "greeter_mesh", "personal_color_mesh"]
