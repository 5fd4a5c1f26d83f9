"""공유 pytest fixture 모음."""

from datetime import datetime

import pytest

from taskscope.config import Settings
from taskscope.layers.layer1_extraction import BaselineExtractor
from taskscope.layers.layer2_classification import ScopeClassifier
from taskscope.models import Project, Task, TaskContent
from taskscope.services import MemoryStorage, ProjectLockManager, ScopeService


SAMPLE_PRD = """# 任务管理系统PRD

## 项目概述
开发一个简单的任务管理系统，支持任务的创建、编辑、删除和状态管理。

## 功能需求

### 1. 任务管理
- 创建任务：用户可以创建新任务，包含标题、描述、优先级
- 编辑任务：用户可以修改任务信息
- 删除任务：用户可以删除不需要的任务
- 状态管理：支持待办、进行中、已完成三种状态

### 2. 任务列表
- 显示所有任务
- 按状态筛选任务
- 按优先级排序

### 3. 基本界面
- 简洁的Web界面
- 响应式设计

## 非功能需求
- 性能：支持1000个任务
- 可用性：99%在线时间
- 兼容性：支持主流浏览器

## 技术约束
- 使用Node.js后端
- 使用JSON文件存储
- 不需要用户认证系统
"""

IN_SCOPE_TASK = {
    "title": "实现任务创建功能",
    "description": "开发任务创建的API和界面",
    "details": "包含表单验证和数据存储",
}

OUT_OF_SCOPE_TASK = {
    "title": "添加用户登录系统",
    "description": "实现用户注册、登录和认证",
    "details": "包含JWT token和密码加密",
}

PERFORMANCE_TASK = {
    "title": "优化任务列表性能",
    "description": "提升任务列表的加载速度",
    "details": "添加分页和缓存机制",
}

PROJECT_ID = "scope-test"


@pytest.fixture
def test_settings():
    """캐시를 끈 메모리 저장소 설정."""
    return Settings(
        storage_backend="memory",
        report_cache_ttl_seconds=0.0,
        lock_timeout_seconds=1.0,
    )


@pytest.fixture
def memory_storage():
    return MemoryStorage(ProjectLockManager(timeout_seconds=1.0))


@pytest.fixture
def service(memory_storage, test_settings):
    return ScopeService(memory_storage, test_settings)


@pytest.fixture
async def project_service(service):
    """샘플 PRD가 업로드된 프로젝트를 가진 서비스."""
    await service.create_project(Project(id=PROJECT_ID, name="범위 관리 테스트"))
    await service.upload_prd(PROJECT_ID, "prd.md", SAMPLE_PRD)
    return service


@pytest.fixture
async def analyzed_service(project_service):
    """샘플 PRD 분석까지 끝난 서비스."""
    await project_service.analyze_prd(PROJECT_ID, "prd.md")
    return project_service


@pytest.fixture
def extractor():
    return BaselineExtractor()


@pytest.fixture
def sample_baseline(extractor):
    return extractor.extract(SAMPLE_PRD, source_document="prd.md", analyzed_at=datetime(2024, 1, 1))


@pytest.fixture
def classifier():
    return ScopeClassifier(low_threshold=0.15, high_threshold=0.5, max_matches=3)


@pytest.fixture
def in_scope_content():
    return TaskContent(**IN_SCOPE_TASK)


@pytest.fixture
def out_of_scope_content():
    return TaskContent(**OUT_OF_SCOPE_TASK)


@pytest.fixture
def sample_tasks():
    """훅을 거치지 않은 태스크 3개."""
    return [
        Task(id="1", **IN_SCOPE_TASK),
        Task(id="2", **OUT_OF_SCOPE_TASK),
        Task(id="3", **PERFORMANCE_TASK),
    ]
