from typing import Any, Dict, List

from .schemas import FunctionDeclaration, Tool

GET_USER_PORTFOLIO = "getUserPortfolio"
GET_REALIZED_GAINS = "getRealizedGains"

TOOL_DESCRIPTIONS = {
    GET_USER_PORTFOLIO: "사용자의 현재 보유 종목을 시장(KR/US) 구분과 함께 조회하고 미실현 손익을 반환한다.",
    GET_REALIZED_GAINS: "사용자의 확정 손익 내역과 합계를 조회한다.",
}


def user_id_parameters() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "userId": {
                "type": "string",
                "description": "조회 대상 사용자 ID. 이 서비스는 기본적으로 me를 사용한다.",
            }
        },
        "required": ["userId"],
    }


def function_declarations() -> List[FunctionDeclaration]:
    return [
        FunctionDeclaration(name=name, description=description, parameters=user_id_parameters())
        for name, description in TOOL_DESCRIPTIONS.items()
    ]


def build_tools() -> List[Tool]:
    return [Tool(function_declarations=function_declarations())]


def as_json_spec() -> List[Dict[str, Any]]:
    return [decl.model_dump() for decl in function_declarations()]


def is_supported_tool(name: str) -> bool:
    return name in TOOL_DESCRIPTIONS
