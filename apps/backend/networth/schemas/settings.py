"""
使用者設定 Schema
"""

from decimal import Decimal

from pydantic import BaseModel, Field


class UserSettings(BaseModel):
    """顯示偏好（暱稱、財務自由目標金額）"""
    nickname: str = "Rich"
    fire_goal: Decimal = Field(default=Decimal("100000000"), alias="fireGoal")

    model_config = {"populate_by_name": True}


class UserSettingsUpdate(BaseModel):
    """部分更新使用者設定"""
    nickname: str | None = Field(default=None, max_length=50)
    fire_goal: Decimal | None = Field(default=None, alias="fireGoal", gt=0)

    model_config = {"populate_by_name": True}
