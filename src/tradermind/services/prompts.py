"""Prompt construction for the trader psychology analysis."""

import json

from tradermind.models.survey import QuestionAnswer

ANALYST_SYSTEM_PROMPT = "你是一位专业的金融交易心理分析师和性格分析专家。"

ANALYSIS_USER_TEMPLATE = """请基于以下问卷回答分析用户的性格和可能的交易习惯。
给出详细、专业的分析结果，并提供针对性的建议。
分析需要包含以下几个部分：
1. 用户性格特点
2. 交易风格倾向
3. 风险承受能力
4. 决策模式
5. 情绪控制能力
6. 针对性的改进建议

用户信息：
用户ID：{user_id}
用户名：{display_name}

问卷回答：
{answers_json}
"""


def answer_rows(answers: list[QuestionAnswer]) -> list[dict]:
    """Flatten answers into the question/answer/duration rows used by prompt and appendix."""
    return [
        {
            "question": a.question_title,
            "answer": a.display_answer,
            "duration": a.answer_duration_seconds,
        }
        for a in answers
    ]


def build_analysis_prompt(user_id: str, display_name: str, answers: list[QuestionAnswer]) -> str:
    return ANALYSIS_USER_TEMPLATE.format(
        user_id=user_id,
        display_name=display_name,
        answers_json=json.dumps(answer_rows(answers), ensure_ascii=False, indent=2),
    )
