import json
import logging
import os
import typing

import dacite
from PySide6.QtCore import QObject, Signal, Slot

from cadence import __version__ as version
from cadence.paths import Paths
from cadence.playback.recovery import RecoveryPolicy

with open(os.path.join(Paths.ASSETSPATH, "DEFAULTSETTINGS.json")) as default_settings_file:
    defaultSettings: dict[str, typing.Any] = json.load(default_settings_file)

# environment variable -> setting key, applied on top of the settings file
ENV_OVERRIDES = {
    "CADENCE_API_URL": "apiUrl",
    "CADENCE_PLAYER_BACKEND": "mediaPlayerBackend",
}

type_map = {
    # UI/control types
    "switch": bool,
    "textEdit": str,
    "dropdown": str,
    # plain types
    "bool": bool,
    "str": str,
    "int": int,
    "float": float,
    "object": dict,
}


def get_type(type_: typing.Union[str, type]) -> type:
    if isinstance(type_, type):
        return type_
    if type_ in type_map:
        return type_map[type_]
    raise TypeError(f"Invalid type: {type_}, must be one of {list(type_map.keys())} or a valid type")


def coerce(value: typing.Any, base_type: type) -> typing.Any:
    if base_type is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if base_type is bool and isinstance(value, int):
        return value == 1
    if base_type is int and isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value)
    return value


class Settings(QObject):
    settingChanged = Signal(str)

    _instance: typing.Union["Settings", None] = None

    @classmethod
    def instance(cls) -> "Settings":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def __init__(self, settings_file: str = Paths.SETTINGSPATH, environ: typing.Optional[typing.Mapping[str, str]] = None):
        if not isinstance(settings_file, str):
            raise TypeError("Settings file must be a string")
        super().__init__()

        self.logger = logging.getLogger("Settings")
        self.settings_file = settings_file
        self.environ = os.environ if environ is None else environ
        self.settingObjects: dict[str, Setting] = {}
        self.groupKeyMap: dict[str, list[str]] = {}

        self.load()

    def load(self) -> None:
        savedSettings: dict = {}
        if os.path.exists(self.settings_file):
            try:
                with open(self.settings_file, "r") as f:
                    savedSettings = typing.cast(dict, json.load(f) or {}).get("settings", {})
            except Exception as e:
                self.logger.error(f"Failed to load settings file: {e}")

        self.settingObjects.clear()
        self.groupKeyMap.clear()

        for key, default_entry in typing.cast(dict, defaultSettings["settings"]).items():
            entry = dict(default_entry)
            saved_entry = savedSettings.get(key, {})
            if isinstance(saved_entry, dict) and "value" in saved_entry:
                entry["value"] = self._validated(key, entry, saved_entry["value"])
            entry["key"] = key
            self.settingObjects[key] = Setting(data=entry, owner=self)
            group = entry.get("group")
            if group:
                self.groupKeyMap.setdefault(group, []).append(key)

        for env, key in ENV_OVERRIDES.items():
            raw = self.environ.get(env)
            if raw:
                setting = self.settingObjects[key]
                setting.override(self._validated(key, setting.data, raw))
                self.logger.info(f"{key} overridden by ${env}")

        self.logger.info("Settings loaded successfully")

    def _validated(self, key: str, entry: dict, value: typing.Any) -> typing.Any:
        """Saved/env value if it fits the declared type, otherwise the default."""
        declared = entry.get("type", "textEdit")
        base_type = get_type(declared)
        value = coerce(value, base_type)
        if not isinstance(value, base_type):
            self.logger.error(f"Setting {key} expects {base_type.__name__}, got {value!r}, using default")
            return entry["value"]
        options = entry.get("dropdownOptions") or []
        if declared == "dropdown" and options and value not in options:
            self.logger.warning(f"'{key}' value '{value}' not in {options}, using default")
            return entry["value"]
        return value

    def save(self):
        settings_to_save: dict[str, typing.Any] = {"for": version, "settings": {}}
        for key, setting in self.settingObjects.items():
            settings_to_save["settings"][key] = {"value": setting.storedValue}

        try:
            with open(self.settings_file, "w") as f:
                json.dump(settings_to_save, f, indent=4)
        except Exception as e:
            self.logger.error(f"Failed to save settings file: {e}")

    def get(self, key: str, default=None) -> typing.Any:
        setting = self.settingObjects.get(key)
        if not setting:
            return default
        return setting.value

    def set(self, key: str, value) -> bool:
        setting = self.settingObjects.get(key)
        if not setting:
            return False
        return setting.setValue(value)


class Setting(QObject):
    dataChanged = Signal(str, object)
    valueChanged = Signal()

    def __init__(self, data: dict, owner: typing.Optional[Settings] = None):
        super().__init__()
        if not isinstance(data["key"], str):
            raise TypeError("Key must be a string" + "\n" + str(data))
        self.logger = logging.getLogger("Settings")
        self.owner = owner

        self.data = data
        self.key = data["key"]
        self.value = data["value"]
        self.type = data["type"]
        self.description = data.get("description", "")
        self.group = data.get("group", "")
        self.hidden = data.get("hidden", False)
        self.name = data.get("name", self.key)
        self.dropdownOptions = data.get("dropdownOptions", None)
        self.visualDropdownOptions = data.get("visualDropdownOptions", None)

        # value persisted to disk; differs from value while an env override is active
        self.storedValue = self.value
        self.overridden = False

    def get(self, key: str, default=None):
        return self.data.get(key, default)

    def override(self, value) -> None:
        self.overridden = True
        self.value = value
        self.data["value"] = value

    @Slot(object, result=bool)
    def setValue(self, value) -> bool:
        base_type = get_type(self.type)
        value = coerce(value, base_type)

        if self.type == "dropdown":
            options = self.dropdownOptions or []
            if value not in options:
                self.logger.error(f"Setting {self.key} only accepts one of {options}, got '{value}', skipping...")
                return False

        if not isinstance(value, base_type):
            self.logger.error(f"Setting {self.key} expects {base_type}, got {type(value)} ({value}), skipping...")
            return False

        if value == self.value:
            return True

        self.logger.info(f"Setting {self.key} to {value}")
        self.data["value"] = value
        self.value = value
        self.storedValue = value
        self.overridden = False
        self.dataChanged.emit("value", value)
        self.valueChanged.emit()

        if self.owner is not None:
            self.owner.settingChanged.emit(self.key)
            self.owner.save()
        return True


def getSetting(key: str) -> Setting:
    """Get a setting by key."""
    setting = Settings.instance().settingObjects.get(key)
    if not setting:
        raise KeyError(f"No setting found with key: {key}")
    return setting


def recoveryPolicy(settings: typing.Optional[Settings] = None) -> RecoveryPolicy:
    """RecoveryPolicy from the `recovery` setting, unknown keys ignored."""
    settings = settings or Settings.instance()
    raw = settings.get("recovery") or {}
    try:
        return dacite.from_dict(
            data_class=RecoveryPolicy,
            data=raw,
            config=dacite.Config(type_hooks={float: float}),
        )
    except dacite.DaciteError as e:
        logging.getLogger("Settings").error(f"Invalid recovery settings ({e}), using defaults")
        return RecoveryPolicy()
