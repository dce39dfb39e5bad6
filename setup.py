"""
Kubernetes 集群健康检查工具安装配置
"""

from setuptools import setup, find_packages
from pathlib import Path

# 读取 README
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

setup(
    name="k8s-health-checker",
    version="1.0.0",
    author="k8s-health-checker contributors",
    description="Kubernetes 集群健康检查与报告工具 (HTML / JSON / 日志 / 终端仪表盘)",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests*", "docs*", "build*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "Topic :: System :: Monitoring",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.9",
    install_requires=[
        "pyyaml>=6.0",
        "python-dotenv>=1.0.0",
        "rich>=13.0.0",
        "filelock>=3.12.0",
        "pydantic>=2.0.0",
        "requests>=2.28.0",
        "jinja2>=3.1.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "isort>=5.12.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "k8s-health-checker=k8s_health_checker.cli.main:main",
            "k8s-health-dashboard=k8s_health_checker.cli.dashboard:main",
        ],
    },
    include_package_data=True,
    package_data={
        "k8s_health_checker": [
            "report/templates/*.j2",
        ],
    },
)
