"""
Key/value system settings.
"""
from typing import List

from sqlalchemy.orm import Session

from dental_lab.core.exceptions import ConflictError, NotFoundError
from dental_lab.core.logging import audit_logger
from dental_lab.models.setting import Setting
from dental_lab.schemas.setting import SettingCreate, SettingUpdate, SettingValue


class SettingsService:
    def __init__(self, db: Session):
        self.db = db

    def get_setting(self, key: str) -> Setting:
        setting = self.db.query(Setting).filter(Setting.key == key).first()
        if not setting:
            raise NotFoundError(f"Setting '{key}' not found", code="SETTING_NOT_FOUND")
        return setting

    def list_settings(self) -> List[Setting]:
        return self.db.query(Setting).order_by(Setting.key.asc()).all()

    def create_setting(self, data: SettingCreate) -> Setting:
        if self.db.query(Setting.id).filter(Setting.key == data.key).first():
            raise ConflictError("Setting key already exists", code="SETTING_KEY_EXISTS")
        setting = Setting(key=data.key, value=data.value, description=data.description)
        self.db.add(setting)
        self.db.commit()
        self.db.refresh(setting)
        audit_logger.log_data_change(None, "settings", setting.key, "create")
        return setting

    def update_setting(self, key: str, data: SettingUpdate) -> Setting:
        setting = self.get_setting(key)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(setting, field, value)
        self.db.commit()
        self.db.refresh(setting)
        audit_logger.log_data_change(None, "settings", setting.key, "update")
        return setting

    def delete_setting(self, key: str) -> None:
        setting = self.get_setting(key)
        self.db.delete(setting)
        self.db.commit()
        audit_logger.log_data_change(None, "settings", key, "delete")

    def bulk_update_settings(self, values: List[SettingValue]) -> List[Setting]:
        """Update several settings at once: either every key is written or none is."""
        updated = []
        try:
            for item in values:
                setting = self.get_setting(item.key)
                setting.value = item.value
                updated.append(setting)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        for setting in updated:
            self.db.refresh(setting)
        audit_logger.log_bulk_change("settings", [s.key for s in updated], "update")
        return updated
