"""服务模块：配置、汇总、状态记录与调度"""
