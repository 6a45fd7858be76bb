from typing import Any, Generic, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy.orm import Query, Session

ModelType = TypeVar("ModelType")
SchemaType = TypeVar("SchemaType", bound=BaseModel)


class BaseRepository(Generic[ModelType, SchemaType]):
    """ORM 행을 읽기 전용 Pydantic 스키마로 돌려주는 리포지토리 베이스

    쓰기 메서드는 flush 까지만 합니다. commit/rollback 은 서비스의 몫이라
    지갑 갱신과 원장 기록 같은 여러 쓰기를 한 트랜잭션으로 묶을 수 있습니다.
    """

    def __init__(
        self, model_class: Type[ModelType], schema_class: Type[SchemaType], db: Session
    ):
        self.model_class = model_class
        self.schema_class = schema_class
        self.db = db

    def _to_schema(self, row: Optional[ModelType]) -> Optional[SchemaType]:
        if row is None:
            return None
        return self.schema_class.model_validate(row)

    def _to_schema_list(self, rows: Iterable[ModelType]) -> List[SchemaType]:
        return [self._to_schema(row) for row in rows]

    def _query_by(self, **conditions: Any) -> Query:
        # 같은 세션에서 다른 트랜잭션이 바꾼 값을 놓치지 않도록 identity map 을 덮어씀
        query = self.db.query(self.model_class).populate_existing()
        for column, value in conditions.items():
            query = query.filter(getattr(self.model_class, column) == value)
        return query

    def get_by_id(self, id: Any) -> Optional[SchemaType]:
        return self._to_schema(self._query_by(id=id).first())

    def get_by_field(self, field_name: str, value: Any) -> Optional[SchemaType]:
        return self._to_schema(self._query_by(**{field_name: value}).first())

    def exists(self, **conditions: Any) -> bool:
        return self._query_by(**conditions).first() is not None

    def create(self, **values: Any) -> SchemaType:
        """행 추가 후 flush (DB 기본값과 제약조건 위반은 여기서 드러남)"""
        row = self.model_class(**values)
        self.db.add(row)
        self.db.flush()
        self.db.refresh(row)
        return self._to_schema(row)
