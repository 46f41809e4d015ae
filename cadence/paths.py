import os


class Paths:
    ASSETSPATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "assets")
    ROOTPATH = os.path.abspath(".")

    DATAPATH = os.path.abspath(os.path.join("data"))

    SETTINGSPATH = os.environ.get("CADENCE_SETTINGS", os.path.join(ROOTPATH, "settings.json"))
