"""
API模型模块

定义HTTP服务使用的响应模型。
"""

from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """
    API响应基础模型

    所有API响应的基础模型，包括成功和错误状态。
    泛型参数T表示响应数据的类型。
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool = Field(default=True, description="请求是否成功")
    data: Optional[T] = Field(
        default=None, description="响应数据，仅在success=True时存在"
    )
    error: Optional[Dict[str, Any]] = Field(
        default=None, description="错误信息，仅在success=False时存在"
    )

    @classmethod
    def success_response(cls, data: Optional[T] = None) -> "ApiResponse[T]":
        """
        创建成功响应

        Args:
            data: 响应数据

        Returns:
            成功响应实例
        """
        return cls(success=True, data=data)

    @classmethod
    def error_response(
        cls,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> "ApiResponse[T]":
        """
        创建错误响应

        Args:
            code: 错误码
            message: 错误消息
            details: 错误详情

        Returns:
            错误响应实例
        """
        return cls(
            success=False,
            error=dict(code=code, message=message, details=details or {}),
        )


class IdResponse(BaseModel):
    """单个ID响应"""

    id: int = Field(description="生成的ID")
    # JavaScript的Number无法精确表示超过2^53的整数
    id_str: str = Field(description="十进制字符串形式的ID")

    @classmethod
    def from_id(cls, value: int) -> "IdResponse":
        return cls(id=value, id_str=str(value))


class IdBatchResponse(BaseModel):
    """批量ID响应"""

    count: int = Field(description="ID数量")
    ids: List[str] = Field(description="十进制字符串形式的ID列表")
