from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .core.policy import AttendancePolicy
from .database.connection import DBConfig, DatabaseConnection
from .programs.mysql_program_repository import MySQLProgramRepository
from .programs.repository import ProgramRepository
from .reports.service import AttendanceQueryService
from .sessions.mysql_session_repository import MySQLSessionRepository
from .sessions.repository import SessionRepository
from .tokens.issuer import TokenIssuer
from .tokens.mysql_token_repository import MySQLTokenRepository
from .tokens.repository import TokenRepository
from .tokens.verifier import TokenVerifier


@dataclass(frozen=True)
class Container:
    policy: AttendancePolicy

    sessions_repo: SessionRepository
    attendance_repo: AttendanceRepository
    tokens_repo: TokenRepository
    programs_repo: ProgramRepository

    token_issuer: TokenIssuer
    token_verifier: TokenVerifier
    attendance_service: AttendanceService
    query_service: AttendanceQueryService

    conn: Optional[DatabaseConnection] = None


def assemble_container(
    *,
    sessions_repo: SessionRepository,
    attendance_repo: AttendanceRepository,
    tokens_repo: TokenRepository,
    programs_repo: ProgramRepository,
    signing_key: str,
    policy: AttendancePolicy,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    token_issuer = TokenIssuer(sessions_repo, signing_key, policy=policy, tokens=tokens_repo)
    token_verifier = TokenVerifier(
        signing_key,
        tokens=tokens_repo,
        single_use=policy.single_use_tokens,
        single_active=policy.single_active_token,
    )
    attendance_service = AttendanceService(
        attendance_repo,
        sessions_repo,
        token_verifier,
        programs_repo,
        strategy_factory=AttendanceStrategyFactory(),
        policy=policy,
    )
    query_service = AttendanceQueryService(attendance_repo)

    return Container(
        policy=policy,
        sessions_repo=sessions_repo,
        attendance_repo=attendance_repo,
        tokens_repo=tokens_repo,
        programs_repo=programs_repo,
        token_issuer=token_issuer,
        token_verifier=token_verifier,
        attendance_service=attendance_service,
        query_service=query_service,
        conn=conn,
    )


def build_container(*, db_config: dict, signing_key: str, policy: AttendancePolicy) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
        pool_size=int(db_config.get("pool_size", 5)),
    )
    conn = DatabaseConnection.get_instance(config)

    return assemble_container(
        sessions_repo=MySQLSessionRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        tokens_repo=MySQLTokenRepository(conn),
        programs_repo=MySQLProgramRepository(conn),
        signing_key=signing_key,
        policy=policy,
        conn=conn,
    )
